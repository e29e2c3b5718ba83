"""External tool configuration (engine, merger, signer, adb)."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Final

from .env import optional_env_var, require_env_var

ENGINE_COMMAND_VAR: Final[str] = "PATCHRUN_ENGINE_COMMAND"
MERGE_COMMAND_VAR: Final[str] = "PATCHRUN_MERGE_COMMAND"
APKSIGNER_VAR: Final[str] = "PATCHRUN_APKSIGNER"
ADB_VAR: Final[str] = "PATCHRUN_ADB"

DEFAULT_APKSIGNER: Final[str] = "apksigner"
DEFAULT_ADB: Final[str] = "adb"


@dataclass(frozen=True, slots=True)
class ToolsConfig:
    engine_command: tuple[str, ...]
    merge_command: tuple[str, ...] | None = None
    apksigner: str = DEFAULT_APKSIGNER
    adb: str = DEFAULT_ADB


def _split(value: str | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    return tuple(shlex.split(value))


def get_tools_config() -> ToolsConfig:
    """Load tool locations from the environment.

    The engine command is mandatory; everything else falls back to the tool
    name being resolvable on ``PATH``.
    """

    engine = require_env_var(ENGINE_COMMAND_VAR, hint="command that runs the patch engine")
    return ToolsConfig(
        engine_command=tuple(shlex.split(engine)),
        merge_command=_split(optional_env_var(MERGE_COMMAND_VAR)),
        apksigner=optional_env_var(APKSIGNER_VAR, DEFAULT_APKSIGNER) or DEFAULT_APKSIGNER,
        adb=optional_env_var(ADB_VAR, DEFAULT_ADB) or DEFAULT_ADB,
    )
