"""Settings for a patchrun invocation: tool locations, run paths and logging."""

from __future__ import annotations

from .env import optional_env_var, require_env_var
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .paths import RunPaths, resolve_run_paths
from .tools import ToolsConfig, get_tools_config

__all__ = [
    "ConfigurationError",
    "MissingConfigurationError",
    "RunPaths",
    "ToolsConfig",
    "configure_logging",
    "get_tools_config",
    "optional_env_var",
    "require_env_var",
    "resolve_run_paths",
]
