"""JSON options file: persisted option values keyed by patch name."""

from __future__ import annotations

import json
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from patchrun.domain.errors import OptionError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from patchrun.domain.ports.options import OptionStore
    from patchrun.domain.types import OptionValues

log = getLogger(__name__)


class OptionEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    value: Any = None


class PatchOptionsEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    patch_name: str = Field(alias="patchName")
    options: list[OptionEntry] = Field(default_factory=list[OptionEntry])


_OPTIONS_FILE = TypeAdapter(list[PatchOptionsEntry])


def parse_options(text: str) -> dict[str, OptionValues]:
    entries = _OPTIONS_FILE.validate_json(text)
    return {
        entry.patch_name: {option.key: option.value for option in entry.options}
        for entry in entries
    }


def serialize_options(values: Mapping[str, OptionValues]) -> str:
    entries = [
        PatchOptionsEntry(
            patch_name=name,
            options=[OptionEntry(key=key, value=value) for key, value in options.items()],
        )
        for name, options in values.items()
    ]
    payload = _OPTIONS_FILE.dump_python(entries, by_alias=True, mode="json")
    return json.dumps(payload, indent=2) + "\n"


@dataclass(slots=True)
class JsonOptionStore:
    path: Path

    def load(self) -> dict[str, OptionValues] | None:
        if not self.path.is_file():
            return None
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            log.debug("Options file %s is empty, treating it as absent", self.path)
            return None
        try:
            return parse_options(text)
        except ValidationError as exc:
            raise OptionError(f"Options file {self.path} is malformed: {exc}") from exc

    def save(self, values: Mapping[str, OptionValues]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(serialize_options(values), encoding="utf-8")
        log.info("Wrote default options to %s", self.path)


if TYPE_CHECKING:
    _store_check: OptionStore = JsonOptionStore(path=Path("options.json"))
