"""Main CLI entry point for podshell"""

import argparse
import asyncio
import getpass
import sys
from typing import Optional

from dotenv import load_dotenv

from .commands import run_console, run_scan
from ..client.config import load_client_config, save_client_config
from ..client.session import ControlSession
from ..transport import open_transport
from ..utils.config import Config
from ..utils.exceptions import PodshellError
from ..utils.logger import Logger, logger


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""

    parser = argparse.ArgumentParser(
        prog='podshell',
        description='podshell - manage containers on a remote host over SSH',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Log in to a host, uploading the agent first
  podshell --host 192.168.1.20 --user pi --agent-binary ./podshell-agent

  # Run against a local agent (no SSH)
  podshell --dev

  # Find SSH hosts on the local network
  podshell --scan
"""
    )
    parser.add_argument(
        '--dev',
        action='store_true',
        help='Run the agent as a local child process instead of over SSH'
    )
    parser.add_argument('--host', help='Remote host (default: last used)')
    parser.add_argument('--user', help='Login user (default: last used)')
    parser.add_argument(
        '--port',
        type=int,
        help=f'SSH port (default: last used or {Config.DEFAULT_SSH_PORT})'
    )
    parser.add_argument('--key', help='Private key file')
    parser.add_argument(
        '--agent-binary',
        help='Agent executable to upload before starting it (default: use the one already on the host)'
    )
    parser.add_argument(
        '--scan',
        action='store_true',
        help='Scan the local /24 network for open SSH ports and exit'
    )
    parser.add_argument(
        '--log-level',
        help='Log level (default: PODSHELL_LOG_LEVEL or INFO)'
    )
    return parser


def prompt(label: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    value = input(f"{label}{suffix}: ").strip()
    return value or default


def main(argv: Optional[list] = None):
    """Main CLI entry point"""
    load_dotenv(override=True)
    args = create_parser().parse_args(argv)

    try:
        cfg = load_client_config()
        level = args.log_level or ("DEBUG" if cfg.debug else Config.get_log_level())
        Logger.set_level(level)

        if args.scan:
            run_scan(args.port or Config.DEFAULT_SSH_PORT)
            return

        if args.dev:
            transport = open_transport(dev=True)
        else:
            host = args.host or prompt("Host", cfg.last_host)
            user = args.user or prompt("User", cfg.last_user)
            port = args.port or cfg.last_port
            if not host or not user:
                logger.error("Host and user are required")
                sys.exit(1)
            password = None
            if not args.key:
                password = getpass.getpass(f"Password for {user}@{host}: ")

            transport = open_transport(
                host=host,
                user=user,
                port=port,
                password=password,
                key_path=args.key,
            )
            cfg.last_host, cfg.last_user, cfg.last_port = host, user, port

        session = ControlSession(transport)
        asyncio.run(run_console(session, args.agent_binary))

        if not args.dev:
            save_client_config(cfg)

    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
        sys.exit(130)
    except PodshellError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
