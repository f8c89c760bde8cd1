import pytest

from podshell.cli import commands
from podshell.cli.commands import (
    Console,
    build_create_payload,
    format_bytes,
    parse_key_values,
    render_inventory,
    sparkline,
)
from podshell.cli.main import create_parser
from podshell.client.session import ControlSession
from podshell.core.catalog import ContainerInfo, EnvironmentType
from podshell.utils.exceptions import ValidationError


def _answers(mapping: dict):
    def ask(prompt: str, default: str) -> str:
        for key, value in mapping.items():
            if prompt.startswith(key):
                return value or default
        return default
    return ask


def test_parser_flags() -> None:
    args = create_parser().parse_args(
        ["--host", "pi", "--user", "me", "--port", "2222", "--key", "id_ed25519", "--agent-binary", "a"]
    )
    assert (args.host, args.user, args.port, args.key, args.agent_binary) == (
        "pi", "me", 2222, "id_ed25519", "a",
    )
    assert create_parser().parse_args(["--dev"]).dev is True
    assert create_parser().parse_args(["--scan"]).scan is True


def test_build_standard_payload() -> None:
    payload = build_create_payload(
        _answers({"Type": "standard", "Name": "web", "Image": "nginx", "Ports": "8080:80, 8443:443",
                  "Env vars": "A=1, B=two"})
    )
    assert payload.type is EnvironmentType.STANDARD
    assert payload.name == "web"
    assert payload.ports == ["8080:80", "8443:443"]
    assert payload.env_vars == {"A": "1", "B": "two"}
    assert payload.minecraft is None


def test_build_game_server_payload_uses_template_defaults() -> None:
    payload = build_create_payload(_answers({"Type": "MINECRAFT", "Name": "mc", "Operators": "alice,bob"}))
    assert payload.image == "itzg/minecraft-server"
    assert payload.ports == ["25565:25565"]
    assert payload.minecraft.eula is True
    assert payload.minecraft.op_users == ["alice", "bob"]
    assert payload.minecraft.server_type == "VANILLA"


def test_build_game_server_requires_eula() -> None:
    with pytest.raises(ValidationError):
        build_create_payload(_answers({"Type": "MINECRAFT", "Accept": "n"}))


def test_build_rejects_unknown_type() -> None:
    with pytest.raises(ValidationError):
        build_create_payload(_answers({"Type": "vm"}))


def test_parse_key_values_rejects_bare_words() -> None:
    with pytest.raises(ValidationError):
        parse_key_values("A=1, oops")


def test_render_inventory() -> None:
    text = render_inventory([ContainerInfo(id="0123456789abcdef", name="web", image="nginx", status="running")])
    assert "0123456789ab" in text
    assert "0123456789abc" not in text
    assert "running" in text
    assert render_inventory([]) == "No containers."


def test_format_and_sparkline() -> None:
    assert format_bytes(512) == "512 B"
    assert format_bytes(2048) == "2.0 KiB"
    assert sparkline([0, 100]) == " █"
    assert sparkline([]) == ""


@pytest.mark.asyncio
async def test_console_commands_against_session(loopback_transport, capsys) -> None:
    session = ControlSession(loopback_transport, poll=False)
    await session.open()
    console = Console(session)
    try:
        await console.execute("ping", [])
        assert "PONG" in capsys.readouterr().out

        cid = loopback_transport.backend.create_container(commands.CreateEnvPayload(name="web", image="nginx"))
        await console.execute("ls", [])
        assert "web" in capsys.readouterr().out

        await console.execute("stop", ["web"])
        assert "Stopped." in capsys.readouterr().out
        assert loopback_transport.backend.list_containers()[0].status == "exited"

        await console.execute("input", [cid[:12], "say", "hello"])
        assert "Sent." in capsys.readouterr().out

        await console.execute("rm", ["nope"])
        assert "Error: container not found: nope" in capsys.readouterr().out

        await console.execute("start", [])
        assert "usage: start ID" in capsys.readouterr().out

        await console.execute("frobnicate", [])
        assert "Unknown command" in capsys.readouterr().out
    finally:
        await session.close()
