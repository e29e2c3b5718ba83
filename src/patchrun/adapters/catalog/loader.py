"""Load patch bundles into a single ordered catalog."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from patchrun.domain.errors import CatalogError
from patchrun.domain.types import Patch, PatchOption

from .schema import BundlePayload, PatchPayload

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

log = getLogger(__name__)


def _to_patch(payload: PatchPayload, index: int) -> Patch:
    compatible = None
    if payload.compatible_packages is not None:
        compatible = {
            package: None if versions is None else frozenset(versions)
            for package, versions in payload.compatible_packages.items()
        }
    return Patch(
        name=payload.name,
        index=index,
        use=payload.use,
        description=payload.description,
        compatible_packages=compatible,
        options=tuple(
            PatchOption(
                key=option.key,
                default=option.default,
                title=option.title,
                description=option.description,
                required=option.required,
            )
            for option in payload.options
        ),
    )


def read_bundle(path: Path) -> BundlePayload:
    if not path.is_file():
        raise CatalogError(f"{path.name} can't be found")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return BundlePayload.model_validate(raw)
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path.name} is not valid JSON: {exc.msg}") from exc
    except ValidationError as exc:
        raise CatalogError(f"{path.name} is not a valid patch bundle: {exc}") from exc


def load_catalog(paths: Iterable[Path]) -> tuple[Patch, ...]:
    """Combine the bundles in the given order; indices span the whole catalog."""

    patches: list[Patch] = []
    for path in paths:
        bundle = read_bundle(path)
        log.debug("Read %d patches from %s", len(bundle.patches), path)
        base = len(patches)
        patches.extend(
            _to_patch(payload, base + offset) for offset, payload in enumerate(bundle.patches)
        )
    return tuple(patches)


__all__ = ["load_catalog", "read_bundle"]
