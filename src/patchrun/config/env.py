"""Reading ``PATCHRUN_*`` settings from the process environment.

Blank values count as unset so an empty line in ``.env`` does not shadow a
default.
"""

from __future__ import annotations

import os

from .errors import MissingConfigurationError


def _read(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


def require_env_var(name: str, *, hint: str | None = None) -> str:
    value = _read(name)
    if value is None:
        message = f"{name} is not set"
        raise MissingConfigurationError(f"{message} ({hint})" if hint else message)
    return value


def optional_env_var(name: str, default: str | None = None) -> str | None:
    value = _read(name)
    return default if value is None else value
