from __future__ import annotations

import pytest

_TOOL_VARS = (
    "PATCHRUN_ENGINE_COMMAND",
    "PATCHRUN_MERGE_COMMAND",
    "PATCHRUN_APKSIGNER",
    "PATCHRUN_ADB",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _TOOL_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)
