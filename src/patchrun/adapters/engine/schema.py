"""Pydantic models for the JSON-lines protocol spoken by engine commands.

``inspect`` prints one ``PackagePayload`` object. ``apply`` reads an
``ApplyRequest`` on stdin and prints one event per line: an ``outcome`` for
every patch, then a single ``result``, or a ``fatal`` event when the engine
gives up on the artifact as a whole.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class EngineBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PackagePayload(EngineBaseModel):
    package_name: str = Field(alias="packageName")
    package_version: str = Field(alias="packageVersion")


class PatchRequest(EngineBaseModel):
    name: str
    options: dict[str, Any] = Field(default_factory=dict[str, Any])


class ApplyRequest(EngineBaseModel):
    patches: list[PatchRequest]


class ErrorPayload(EngineBaseModel):
    message: str | None = None
    trace: str = ""


class OutcomeEvent(EngineBaseModel):
    type: Literal["outcome"]
    patch: str
    error: ErrorPayload | None = None
    elapsed_ms: float | None = Field(default=None, alias="elapsedMs")


class ResultEvent(EngineBaseModel):
    type: Literal["result"]
    overlay_dir: str = Field(alias="overlayDir")
    deleted_entries: list[str] = Field(default_factory=list[str], alias="deletedEntries")


class FatalEvent(EngineBaseModel):
    type: Literal["fatal"]
    message: str


EngineEvent = Annotated[OutcomeEvent | ResultEvent | FatalEvent, Field(discriminator="type")]

ENGINE_EVENT: TypeAdapter[OutcomeEvent | ResultEvent | FatalEvent] = TypeAdapter(EngineEvent)


__all__ = [
    "ENGINE_EVENT",
    "ApplyRequest",
    "EngineEvent",
    "ErrorPayload",
    "FatalEvent",
    "OutcomeEvent",
    "PackagePayload",
    "PatchRequest",
    "ResultEvent",
]
