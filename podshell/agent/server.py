"""podshell-agent entry point

Stdio mode (default) serves one session on stdin/stdout, which is how the
control process runs the agent over SSH. ``--listen HOST:PORT`` serves TCP
connections instead, one thread per connection over a shared backend.
"""

import argparse
import socketserver
import sys
import threading
from typing import Optional, Tuple

from .dispatcher import Dispatcher
from ..backends import AbstractBackend, select_backend
from ..utils.config import Config
from ..utils.exceptions import ValidationError
from ..utils.logger import Logger, logger

TTY_NOTICE = (
    "podshell-agent speaks JSON on stdin/stdout and is normally started by the\n"
    "podshell control process over SSH. Type requests such as\n"
    '  {"id":"1","type":"PING"}\n'
    "or press Ctrl-D to exit.\n"
)


def parse_listen(value: str) -> Tuple[str, int]:
    """Split ``HOST:PORT`` (host optional) into a bind address"""
    host, sep, port = value.rpartition(":")
    if not sep:
        host, port = "", value
    try:
        port_num = int(port)
    except ValueError:
        raise ValidationError(f"invalid listen address: {value!r}")
    if not 0 <= port_num <= 65535:
        raise ValidationError(f"port out of range: {port_num}")
    return host or "0.0.0.0", port_num


class AgentTCPServer(socketserver.ThreadingTCPServer):
    """TCP server sharing one backend across connection threads"""

    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address: Tuple[str, int], backend: AbstractBackend):
        self.backend = backend
        self.backend_lock = threading.Lock()
        super().__init__(address, AgentRequestHandler)


class AgentRequestHandler(socketserver.StreamRequestHandler):
    def handle(self):
        peer = "%s:%s" % self.client_address[:2]
        logger.info(f"Connection from {peer}")
        dispatcher = Dispatcher(self.server.backend, lock=self.server.backend_lock)
        dispatcher.serve(self.rfile, self.wfile)
        logger.info(f"Connection from {peer} closed")


def serve_stdio(backend: AbstractBackend) -> None:
    if sys.stdin.isatty():
        sys.stderr.write(TTY_NOTICE)
        sys.stderr.flush()
    Dispatcher(backend).serve(sys.stdin.buffer, sys.stdout.buffer)


def serve_tcp(backend: AbstractBackend, address: Tuple[str, int]) -> None:
    with AgentTCPServer(address, backend) as server:
        host, port = server.server_address[:2]
        logger.info(f"Agent listening on {host}:{port}")
        server.serve_forever()


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="podshell-agent",
        description="podshell agent - container management over a JSON request stream",
    )
    parser.add_argument(
        "--listen",
        metavar="HOST:PORT",
        help="Serve TCP connections instead of stdin/stdout",
    )
    parser.add_argument(
        "--stub",
        action="store_true",
        help="Use the in-memory stub backend instead of Docker",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: PODSHELL_LOG_LEVEL or INFO)",
    )
    return parser


def main(argv: Optional[list] = None):
    """Agent CLI entry point"""
    args = create_parser().parse_args(argv)
    Logger.set_level(args.log_level or Config.get_log_level())

    backend = None
    try:
        address = parse_listen(args.listen) if args.listen else None
        backend = select_backend(force_stub=args.stub)
        if address is None:
            serve_stdio(backend)
        else:
            serve_tcp(backend, address)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    finally:
        if backend is not None:
            backend.close()


if __name__ == "__main__":
    main()
