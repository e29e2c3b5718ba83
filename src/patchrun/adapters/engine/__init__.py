"""Public interface for the command-line patch engine adapter."""

from __future__ import annotations

from .command import CommandEngineSession, CommandOutcomeStream, CommandPatchEngine
from .schema import ApplyRequest, OutcomeEvent, PackagePayload, ResultEvent

__all__ = [
    "ApplyRequest",
    "CommandEngineSession",
    "CommandOutcomeStream",
    "CommandPatchEngine",
    "OutcomeEvent",
    "PackagePayload",
    "ResultEvent",
]
