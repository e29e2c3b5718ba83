"""Resolution of the patches that will run from the catalog and selection rules.

Rules are a tagged union of four frozen dataclasses. Resolution walks the
catalog once, in order, and for each entry applies (first match wins):

1. a disable rule by name or index skips the patch;
2. a compatibility declaration that does not list the package skips it;
3. a listed package with an empty version set warns and excludes it;
4. a version outside a non-empty set warns and excludes it unless ``force``;
5. the patch runs if it is enabled by default (and not ``exclusive``) or
   matched by an enable rule, otherwise it is skipped.

Every exclusion is written to the ``ResultsLedger``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

from patchrun.domain.errors import OptionError, SelectionError
from patchrun.domain.ledger import SkipReason, WarningKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from patchrun.domain.ledger import ResultsLedger
    from patchrun.domain.types import PackageIdentity, Patch


@dataclass(frozen=True, slots=True)
class EnableByName:
    name: str
    options: Mapping[str, Any] = field(default_factory=dict[str, Any], hash=False)


@dataclass(frozen=True, slots=True)
class EnableByIndex:
    index: int
    options: Mapping[str, Any] = field(default_factory=dict[str, Any], hash=False)


@dataclass(frozen=True, slots=True)
class DisableByName:
    name: str


@dataclass(frozen=True, slots=True)
class DisableByIndex:
    index: int


SelectionRule: TypeAlias = "EnableByName | EnableByIndex | DisableByName | DisableByIndex"


@dataclass(frozen=True, slots=True)
class Selection:
    patches: tuple[Patch, ...]
    option_overrides: dict[str, dict[str, Any]]

    @property
    def names(self) -> list[str]:
        return [patch.name for patch in self.patches]


@dataclass(frozen=True, slots=True)
class _RuleIndex:
    enabled_names: frozenset[str]
    enabled_indices: frozenset[int]
    disabled_names: frozenset[str]
    disabled_indices: frozenset[int]

    @classmethod
    def build(cls, rules: Iterable[SelectionRule]) -> _RuleIndex:
        enabled_names: set[str] = set()
        enabled_indices: set[int] = set()
        disabled_names: set[str] = set()
        disabled_indices: set[int] = set()
        for rule in rules:
            match rule:
                case EnableByName(name=name):
                    enabled_names.add(name)
                case EnableByIndex(index=index):
                    enabled_indices.add(index)
                case DisableByName(name=name):
                    disabled_names.add(name)
                case DisableByIndex(index=index):
                    disabled_indices.add(index)
        return cls(
            frozenset(enabled_names),
            frozenset(enabled_indices),
            frozenset(disabled_names),
            frozenset(disabled_indices),
        )

    def disables(self, patch: Patch, position: int) -> bool:
        return patch.name in self.disabled_names or position in self.disabled_indices

    def enables(self, patch: Patch, position: int) -> bool:
        return patch.name in self.enabled_names or position in self.enabled_indices


def _check_indices(rules: Iterable[SelectionRule], size: int) -> None:
    for rule in rules:
        if isinstance(rule, EnableByIndex | DisableByIndex) and not 0 <= rule.index < size:
            raise SelectionError(
                f"Patch index {rule.index} is out of range (catalog has {size} patches)"
            )


def collect_option_overrides(
    catalog: Sequence[Patch],
    rules: Iterable[SelectionRule],
) -> dict[str, dict[str, Any]]:
    """Map patch name to the option overrides carried by its enable rules.

    Index rules are translated to the name of the catalog entry they point at.
    Several rules for the same patch merge, later keys winning in iteration
    order.
    """

    overrides: dict[str, dict[str, Any]] = {}
    for rule in rules:
        match rule:
            case EnableByName(name=name, options=options) if options:
                overrides.setdefault(name, {}).update(options)
            case EnableByIndex(index=index, options=options) if options:
                overrides.setdefault(catalog[index].name, {}).update(options)
            case _:
                continue
    return overrides


def validate_rules(catalog: Sequence[Patch], rules: Iterable[SelectionRule]) -> None:
    """Reject index rules outside the catalog and option keys a patch does not declare.

    Only needs the catalog, so the CLI input can be refused before any tool runs.
    """

    rule_list = list(rules)
    _check_indices(rule_list, len(catalog))
    by_name: dict[str, Patch] = {}
    for patch in catalog:
        by_name.setdefault(patch.name, patch)
    for name, overrides in collect_option_overrides(catalog, rule_list).items():
        patch = by_name.get(name)
        if patch is None:
            continue
        for key in overrides:
            if patch.option(key) is None:
                raise OptionError(f"Patch {name!r} has no option {key!r}")


def _format_versions(versions: frozenset[str]) -> str:
    return ", ".join(sorted(versions))


def resolve_selection(
    catalog: Sequence[Patch],
    rules: Iterable[SelectionRule],
    package: PackageIdentity,
    *,
    exclusive: bool,
    force: bool,
    ledger: ResultsLedger,
) -> Selection:
    """Compute the ordered subset of ``catalog`` to run.

    Raises ``SelectionError`` when an index rule points outside the catalog.
    """

    rule_list = list(rules)
    _check_indices(rule_list, len(catalog))
    index = _RuleIndex.build(rule_list)

    selected: list[Patch] = []
    for position, patch in enumerate(catalog):
        if index.disables(patch, position):
            ledger.add_skipped(patch.name, SkipReason.DISABLED)
            continue

        compatible = patch.compatible_packages
        if compatible is not None:
            if package.name not in compatible:
                ledger.add_skipped(patch.name, SkipReason.PACKAGE_NOT_LISTED)
                continue
            versions = compatible[package.name]
            if versions is not None and not versions:
                ledger.add_warning(
                    patch.name,
                    f"Incompatible with {package.name}",
                    WarningKind.INCOMPATIBLE_PACKAGE,
                )
                continue
            if versions and not force and package.version not in versions:
                ledger.add_warning(
                    patch.name,
                    f"Version mismatch: requires {_format_versions(versions)}",
                    WarningKind.VERSION_MISMATCH,
                )
                continue

        enabled = (not exclusive and patch.use) or index.enables(patch, position)
        if not enabled:
            ledger.add_skipped(patch.name, SkipReason.NOT_ENABLED)
            continue

        selected.append(patch)

    return Selection(
        patches=tuple(selected),
        option_overrides=collect_option_overrides(catalog, rule_list),
    )


__all__ = [
    "DisableByIndex",
    "DisableByName",
    "EnableByIndex",
    "EnableByName",
    "Selection",
    "SelectionRule",
    "collect_option_overrides",
    "resolve_selection",
    "validate_rules",
]
