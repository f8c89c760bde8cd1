"""Interactive console commands"""

import asyncio
import shlex
from datetime import datetime
from typing import Callable, Dict, List, Optional

from tabulate import tabulate

from ..client.discovery import scan_subnet
from ..client.session import ControlSession
from ..client.state import DashboardState
from ..core.catalog import (
    ContainerInfo,
    CreateEnvPayload,
    EnvironmentType,
    GameServerConfig,
    Response,
    TelemetryData,
)
from ..core.templates import get_template, list_templates
from ..utils.exceptions import PodshellError, ValidationError
from ..utils.logger import logger

HELP = [
    ("ls", "List containers"),
    ("top", "Show host telemetry"),
    ("create", "Create an environment (prompts for settings)"),
    ("start ID", "Start a container"),
    ("stop ID", "Stop a container"),
    ("rm ID", "Remove a container"),
    ("logs ID", "Show the last log lines of a container"),
    ("watch ID", "Follow a container's logs"),
    ("unwatch", "Stop following logs"),
    ("input ID TEXT", "Send a line to a container's stdin"),
    ("ping", "Check the agent is responding"),
    ("help", "Show this list"),
    ("quit", "Disconnect and exit"),
]

SPARK = " ▁▂▃▄▅▆▇█"


def format_bytes(n: int) -> str:
    value = float(n)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if value < 1024 or unit == "TiB":
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{n} B"


def sparkline(values, width: int = 40, top: float = 100.0) -> str:
    recent = list(values)[-width:]
    if not recent:
        return ""
    scale = len(SPARK) - 1
    return "".join(SPARK[max(0, min(scale, int(round(v / top * scale))))] for v in recent)


def render_inventory(containers: List[ContainerInfo]) -> str:
    if not containers:
        return "No containers."
    rows = []
    for c in containers:
        created = datetime.fromtimestamp(c.created).strftime("%Y-%m-%d %H:%M") if c.created else ""
        rows.append([c.id[:12], c.name, c.image, c.status, created])
    return tabulate(rows, headers=["ID", "NAME", "IMAGE", "STATUS", "CREATED"], tablefmt="simple")


def render_telemetry(state: DashboardState) -> str:
    t: Optional[TelemetryData] = state.telemetry
    if t is None:
        return "No telemetry received yet."
    rows = [
        ["CPU", f"{t.cpu_usage:.1f} %", sparkline(state.cpu_history)],
        ["Temp", f"{t.cpu_temp:.1f} °C", sparkline(state.temp_history)],
        ["RAM", f"{t.ram_usage:.1f} % ({format_bytes(t.ram_used)} / {format_bytes(t.ram_total)})",
         sparkline(state.ram_history)],
        ["Disk free", f"{format_bytes(t.disk_free)} / {format_bytes(t.disk_total)}", ""],
        ["Docker", "running" if t.docker_running else "not running", ""],
        ["Sampled", t.timestamp, ""],
    ]
    return tabulate(rows, tablefmt="plain")


def render_hosts(hosts: List[str], port: int) -> str:
    if not hosts:
        return f"No hosts with port {port} open."
    return tabulate([[h, port] for h in hosts], headers=["HOST", "PORT"], tablefmt="simple")


def render_response(response: Response, ok_message: str) -> str:
    if not response.success:
        return f"Error: {response.error}"
    if response.error:
        return f"{ok_message}\nWarning: {response.error}"
    return ok_message


def parse_key_values(text: str) -> Dict[str, str]:
    """Parse ``A=1, B=2`` into a dict"""
    out: Dict[str, str] = {}
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        if "=" not in item:
            raise ValidationError(f"expected KEY=VALUE, got {item!r}")
        key, value = item.split("=", 1)
        out[key.strip()] = value.strip()
    return out


def parse_list(text: str) -> List[str]:
    return [item.strip() for item in text.split(",") if item.strip()]


def build_create_payload(ask: Callable[[str, str], str]) -> CreateEnvPayload:
    """
    Collect CREATE_ENV settings through ``ask(prompt, default)``

    Empty answers keep the template's defaults, which the agent fills in.
    """
    kinds = {t.env_type.value: t for t in list_templates()}
    choice = ask(f"Type ({'/'.join(kinds)})", EnvironmentType.STANDARD.value).upper()
    if choice not in kinds:
        raise ValidationError(f"unknown environment type: {choice}")
    env_type = EnvironmentType(choice)
    defaults = get_template(env_type).defaults()

    payload = CreateEnvPayload(
        type=env_type,
        name=ask("Name", ""),
        image=ask("Image", defaults.image),
        ports=parse_list(ask("Ports (host:container, comma separated)", ",".join(defaults.ports))),
        env_vars=parse_key_values(ask("Env vars (KEY=VALUE, comma separated)", "")),
        ram_limit=ask("Memory limit (e.g. 2g)", ""),
    )

    if env_type == EnvironmentType.MINECRAFT:
        base = defaults.minecraft
        eula = ask("Accept the Minecraft EULA? (y/n)", "y").lower().startswith("y")
        if not eula:
            raise ValidationError("the server will not start without accepting the EULA")
        payload.minecraft = GameServerConfig(
            eula=True,
            server_type=ask("Server type", base.server_type).upper(),
            version=ask("Version", base.version),
            motd=ask("MOTD", base.motd),
            modpack=ask("Modpack URL", ""),
            op_users=parse_list(ask("Operators (comma separated)", "")),
            plugins=parse_list(ask("Plugins (comma separated)", "")),
            features=parse_list(ask("Features (comma separated)", ",".join(base.features))),
        )
    return payload


class Console:
    """
    Line-oriented console over a ``ControlSession``

    Input is read on a worker thread so the pollers keep running while the
    operator types.
    """

    def __init__(self, session: ControlSession, read_line: Optional[Callable[[str], str]] = None):
        self.session = session
        self.read_line = read_line or input
        self._commands = {
            "ls": self.cmd_ls,
            "top": self.cmd_top,
            "create": self.cmd_create,
            "start": self.cmd_start,
            "stop": self.cmd_stop,
            "rm": self.cmd_rm,
            "logs": self.cmd_logs,
            "watch": self.cmd_watch,
            "unwatch": self.cmd_unwatch,
            "input": self.cmd_input,
            "ping": self.cmd_ping,
            "help": self.cmd_help,
        }

    async def _read(self, prompt: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read_line, prompt)

    async def run(self) -> None:
        print("Connected. Type 'help' for commands.")
        while self.session.connected:
            try:
                line = await self._read("podshell> ")
            except EOFError:
                break
            if not self.session.connected:
                break
            try:
                words = shlex.split(line)
            except ValueError as e:
                print(f"Error: {e}")
                continue
            if not words:
                continue
            if words[0] in ("quit", "exit"):
                break
            await self.execute(words[0], words[1:])

        if not self.session.connected and self.session.state.last_error:
            print(f"Disconnected: {self.session.state.last_error}")

    async def execute(self, name: str, args: List[str]) -> None:
        command = self._commands.get(name)
        if command is None:
            print(f"Unknown command: {name} (try 'help')")
            return
        try:
            await command(args)
        except ValidationError as e:
            print(f"Error: {e}")
        except ValueError as e:
            # Same request id already in flight
            print(f"Busy: {e}")
        except PodshellError as e:
            logger.error(f"{name} failed: {e}")

    def _resolve(self, args: List[str], usage: str) -> str:
        if not args:
            raise ValidationError(f"usage: {usage}")
        ref = args[0]
        match = self.session.state.find_container(ref)
        return match.id if match else ref

    async def cmd_ls(self, args: List[str]) -> None:
        response = await self.session.list_containers()
        if not response.success:
            print(f"Error: {response.error}")
            return
        print(render_inventory(self.session.state.containers))

    async def cmd_top(self, args: List[str]) -> None:
        print(render_telemetry(self.session.state))

    async def cmd_create(self, args: List[str]) -> None:
        def ask(prompt: str, default: str) -> str:
            suffix = f" [{default}]" if default else ""
            value = self.read_line(f"{prompt}{suffix}: ").strip()
            return value or default

        loop = asyncio.get_running_loop()
        payload = await loop.run_in_executor(None, build_create_payload, ask)
        response = await self.session.create_env(payload)
        print(render_response(response, f"Created {response.data}"))

    async def cmd_start(self, args: List[str]) -> None:
        container_id = self._resolve(args, "start ID")
        print(render_response(await self.session.start_env(container_id), "Started."))

    async def cmd_stop(self, args: List[str]) -> None:
        container_id = self._resolve(args, "stop ID")
        print(render_response(await self.session.stop_env(container_id), "Stopped."))

    async def cmd_rm(self, args: List[str]) -> None:
        container_id = self._resolve(args, "rm ID")
        print(render_response(await self.session.remove_env(container_id), "Removed."))

    async def cmd_logs(self, args: List[str]) -> None:
        container_id = self._resolve(args, "logs ID")
        response = await self.session.get_logs(container_id)
        if response.success:
            print(response.data or "(no output)")
        else:
            print(f"Error: {response.error}")

    async def cmd_watch(self, args: List[str]) -> None:
        container_id = self._resolve(args, "watch ID")
        self.session.watch_logs(container_id)
        print(f"Following logs of {container_id}; 'logs {container_id}' shows the latest tail.")

    async def cmd_unwatch(self, args: List[str]) -> None:
        self.session.unwatch_logs()
        print("Stopped following logs.")

    async def cmd_input(self, args: List[str]) -> None:
        container_id = self._resolve(args, "input ID TEXT")
        text = " ".join(args[1:])
        print(render_response(await self.session.send_input(container_id, text), "Sent."))

    async def cmd_ping(self, args: List[str]) -> None:
        response = await self.session.ping()
        print(response.data if response.success else f"Error: {response.error}")

    async def cmd_help(self, args: List[str]) -> None:
        print(tabulate(HELP, headers=["COMMAND", "DESCRIPTION"], tablefmt="simple"))


async def run_console(session: ControlSession, agent_binary: Optional[str] = None) -> None:
    """Log in, run the console until quit or disconnect, then log out"""
    await session.open(agent_binary)
    try:
        await Console(session).run()
    finally:
        await session.close()


def run_scan(port: int) -> None:
    hosts = scan_subnet(port=port)
    print(render_hosts(hosts, port))
