"""Binding of option values to the patches that will run."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from patchrun.domain.errors import OptionError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from patchrun.domain.ports.options import OptionStore
    from patchrun.domain.selection import Selection
    from patchrun.domain.types import OptionValues, Patch

log = getLogger(__name__)


def default_option_values(patches: Sequence[Patch]) -> dict[str, OptionValues]:
    return {patch.name: patch.default_options() for patch in patches if patch.options}


def _apply_overrides(
    patches: Sequence[Patch],
    overrides: Mapping[str, Mapping[str, object]],
) -> dict[str, OptionValues]:
    values = {patch.name: patch.default_options() for patch in patches}
    by_name = {patch.name: patch for patch in patches}
    for name, patch_overrides in overrides.items():
        patch = by_name.get(name)
        if patch is None:
            log.debug("Ignoring options for %s: patch is not selected", name)
            continue
        for key, value in patch_overrides.items():
            if patch.option(key) is None:
                raise OptionError(f"Patch {name!r} has no option {key!r}")
            values[name][key] = value
    return values


def _apply_persisted(
    patches: Sequence[Patch],
    persisted: Mapping[str, Mapping[str, object]],
) -> dict[str, OptionValues]:
    values = {patch.name: patch.default_options() for patch in patches}
    for name, stored in persisted.items():
        if name not in values:
            log.debug("Options file mentions unknown patch %s", name)
            continue
        patch_values = values[name]
        for key, value in stored.items():
            if key not in patch_values:
                log.debug("Options file mentions unknown option %s of %s", key, name)
                continue
            patch_values[key] = value
    return values


def bind_options(
    catalog: Sequence[Patch],
    selection: Selection,
    store: OptionStore,
) -> dict[str, OptionValues]:
    """Return the option values each selected patch will be invoked with.

    Explicit overrides win and leave the store untouched. Without overrides the
    store is consulted; if it holds nothing yet, the catalog defaults are
    written to it so the user has a file to edit for the next run.
    """

    selected = selection.patches
    if selection.option_overrides:
        log.info("Applying custom options for %d patch(es)", len(selection.option_overrides))
        return _apply_overrides(selected, selection.option_overrides)

    persisted = store.load()
    if persisted is not None:
        log.info("Loading options from the options file")
        values = _apply_persisted(catalog, persisted)
    else:
        log.info("Creating default options")
        store.save(default_option_values(catalog))
        values = {patch.name: patch.default_options() for patch in catalog}

    return {patch.name: values[patch.name] for patch in selected}


__all__ = ["bind_options", "default_option_values"]
