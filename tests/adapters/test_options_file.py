from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from patchrun.adapters.options_file import JsonOptionStore, parse_options, serialize_options
from patchrun.domain.errors import OptionError

if TYPE_CHECKING:
    from pathlib import Path


def test_serialized_layout_matches_file_format() -> None:
    text = serialize_options({"Theme": {"color": "blue", "size": 3}})

    assert json.loads(text) == [
        {
            "patchName": "Theme",
            "options": [{"key": "color", "value": "blue"}, {"key": "size", "value": 3}],
        }
    ]
    assert text.endswith("\n")


def test_parse_accepts_entries_without_options() -> None:
    values = parse_options('[{"patchName": "Ads"}, {"patchName": "X", "options": []}]')

    assert values == {"Ads": {}, "X": {}}


def test_store_returns_none_when_file_missing(tmp_path: Path) -> None:
    store = JsonOptionStore(tmp_path / "options.json")

    assert store.load() is None


def test_store_treats_blank_file_as_missing(tmp_path: Path) -> None:
    path = tmp_path / "options.json"
    path.write_text("  \n", encoding="utf-8")

    assert JsonOptionStore(path).load() is None


def test_store_saves_and_loads(tmp_path: Path) -> None:
    store = JsonOptionStore(tmp_path / "nested" / "options.json")

    store.save({"Theme": {"color": None}})

    assert store.path.is_file()
    assert store.load() == {"Theme": {"color": None}}


def test_malformed_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "options.json"
    path.write_text('{"patchName": "Theme"}', encoding="utf-8")

    with pytest.raises(OptionError):
        JsonOptionStore(path).load()
