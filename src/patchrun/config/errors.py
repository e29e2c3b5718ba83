"""Errors for bad tool settings and bad command-line input.

Everything here maps to exit status 2 in the CLI.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """The run cannot start with the given settings or arguments."""


class MissingConfigurationError(ConfigurationError):
    """A required ``PATCHRUN_*`` variable is unset or blank."""
