"""Pydantic models describing patch bundle files."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BundleBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OptionPayload(BundleBaseModel):
    key: str
    default: Any = None
    title: str | None = None
    description: str | None = None
    required: bool = False


class PatchPayload(BundleBaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    use: bool = True
    compatible_packages: dict[str, list[str] | None] | None = Field(
        default=None, alias="compatiblePackages"
    )
    options: list[OptionPayload] = Field(default_factory=list[OptionPayload])

    @model_validator(mode="before")
    @classmethod
    def _normalize_package_list(cls, value: object) -> object:
        # bundles may list packages as [{"name": ..., "versions": [...]}]
        if not isinstance(value, Mapping):
            return value
        mapping_value = cast(Mapping[str, object], value)
        packages = mapping_value.get("compatiblePackages", mapping_value.get("compatible_packages"))
        if not isinstance(packages, Sequence) or isinstance(packages, str):
            return mapping_value
        normalized: dict[str, object] = {}
        for entry in cast(Sequence[object], packages):
            if isinstance(entry, Mapping):
                package = cast(Mapping[str, object], entry)
                normalized[str(package.get("name"))] = package.get("versions")
        data: dict[str, object] = dict(mapping_value)
        data.pop("compatible_packages", None)
        data["compatiblePackages"] = normalized
        return data


class BundlePayload(BundleBaseModel):
    patches: list[PatchPayload]


__all__ = ["BundlePayload", "OptionPayload", "PatchPayload"]
