"""Environment templates

A template owns the defaults for one ``EnvironmentType`` and knows how to turn
its kind-specific settings into container environment variables. The agent
applies the template before a CREATE_ENV payload reaches the backend, so a
client may send a game server request with an empty settings block and still
get a working server.
"""

import copy
from typing import Dict, List

from .catalog import (
    CreateEnvPayload,
    EnvironmentType,
    GameServerConfig,
    FEATURE_AIKAR_FLAGS,
)


class EnvironmentTemplate:
    """Defaults and env-var mapping for one environment kind"""

    env_type: EnvironmentType = EnvironmentType.STANDARD
    display_name: str = ""

    def defaults(self) -> CreateEnvPayload:
        raise NotImplementedError

    def apply_defaults(self, payload: CreateEnvPayload) -> CreateEnvPayload:
        """Return a copy of ``payload`` with empty fields filled from the template"""
        merged = copy.deepcopy(payload)
        base = self.defaults()
        if not merged.image:
            merged.image = base.image
        if not merged.ports:
            merged.ports = list(base.ports)
        return merged

    def container_env(self, payload: CreateEnvPayload) -> Dict[str, str]:
        """Environment variables for the container, user values included"""
        return dict(payload.env_vars)


class StandardTemplate(EnvironmentTemplate):
    """Plain container from any image"""

    env_type = EnvironmentType.STANDARD
    display_name = "Standard Docker Container"

    def defaults(self) -> CreateEnvPayload:
        return CreateEnvPayload(type=EnvironmentType.STANDARD, image="ubuntu:latest")


class GameServerTemplate(EnvironmentTemplate):
    """Java Minecraft server on the itzg/minecraft-server image"""

    env_type = EnvironmentType.MINECRAFT
    display_name = "Minecraft Server (Java)"

    def defaults(self) -> CreateEnvPayload:
        return CreateEnvPayload(
            type=EnvironmentType.MINECRAFT,
            image="itzg/minecraft-server",
            ports=["25565:25565"],
            minecraft=GameServerConfig(
                eula=True,
                server_type="VANILLA",
                version="latest",
                motd="A podshell managed server",
                features=[FEATURE_AIKAR_FLAGS],
            ),
        )

    def apply_defaults(self, payload: CreateEnvPayload) -> CreateEnvPayload:
        merged = super().apply_defaults(payload)
        base = self.defaults().minecraft

        block = merged.minecraft
        if block is None or block.is_empty():
            merged.minecraft = base
            return merged

        if not block.server_type:
            block.server_type = base.server_type
        if not block.version:
            block.version = base.version
        if not block.motd:
            block.motd = base.motd
        return merged

    def container_env(self, payload: CreateEnvPayload) -> Dict[str, str]:
        env = super().container_env(payload)
        mc = payload.minecraft or GameServerConfig()

        if mc.eula:
            env["EULA"] = "TRUE"
        if mc.server_type:
            env["TYPE"] = mc.server_type
        if mc.version:
            env["VERSION"] = mc.version
        if mc.motd:
            env["MOTD"] = mc.motd
        if mc.modpack:
            env["MODPACK"] = mc.modpack
        if mc.op_users:
            env["OPS"] = ",".join(mc.op_users)
        if mc.plugins:
            env["PLUGINS"] = ",".join(mc.plugins)

        for feature in mc.features:
            if feature == FEATURE_AIKAR_FLAGS:
                env["USE_AIKAR_FLAGS"] = "true"
        return env


TEMPLATES: Dict[EnvironmentType, EnvironmentTemplate] = {
    EnvironmentType.STANDARD: StandardTemplate(),
    EnvironmentType.MINECRAFT: GameServerTemplate(),
}


def get_template(env_type: EnvironmentType) -> EnvironmentTemplate:
    return TEMPLATES[EnvironmentType(env_type)]


def list_templates() -> List[EnvironmentTemplate]:
    return list(TEMPLATES.values())
