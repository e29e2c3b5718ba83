from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from patchrun.app import (
    DEFAULT_KEYSTORE_ALIAS,
    DEFAULT_SIGNER_NAME,
    PatchRequest,
    build_collaborators,
    list_patches,
    patch_artifact,
)
from patchrun.config import ConfigurationError, configure_logging
from patchrun.domain.errors import ArtifactError, EngineError
from patchrun.domain.ledger import ResultsLedger
from patchrun.domain.selection import DisableByIndex, DisableByName, EnableByIndex, EnableByName
from patchrun.ui.progress import TerminalProgressRenderer
from patchrun.ui.summary import print_summary

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from patchrun.domain.selection import SelectionRule
    from patchrun.domain.types import Patch

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIGURATION = 2
EXIT_INTERRUPTED = 130


class _RuleAction(argparse.Action):
    """Append a selection rule, keeping command-line order across flags."""

    def __init__(
        self,
        option_strings: Sequence[str],
        dest: str,
        *,
        factory: Callable[[Any], SelectionRule],
        **kwargs: Any,
    ) -> None:
        super().__init__(option_strings, dest, **kwargs)
        self.factory = factory

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        rules: list[SelectionRule] = list(getattr(namespace, self.dest, None) or [])
        rules.append(self.factory(values))
        setattr(namespace, self.dest, rules)


def parse_option_value(raw: str) -> tuple[str, Any]:
    """Split ``KEY[=VALUE]``; values are JSON when they parse as JSON, else plain strings."""

    key, separator, value = raw.partition("=")
    if not key:
        raise ValueError(f"Invalid option {raw!r}: missing key")
    if not separator:
        return key, None
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


class _OptionAction(argparse.Action):
    """Attach ``KEY[=VALUE]`` to the enable rule immediately before it."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        rules: list[SelectionRule] = list(getattr(namespace, "rules", None) or [])
        if not rules or not isinstance(rules[-1], EnableByName | EnableByIndex):
            parser.error(f"{option_string} must follow -e/--enable or --ei")
        try:
            key, value = parse_option_value(str(values))
        except ValueError as exc:
            parser.error(str(exc))
        last = rules[-1]
        rules[-1] = replace(last, options={**last.options, key: value})
        namespace.rules = rules


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    selection = parser.add_argument_group("patch selection")
    selection.add_argument(
        "-e",
        "--enable",
        dest="rules",
        metavar="NAME",
        action=_RuleAction,
        factory=EnableByName,
        help="Enable a patch by name",
    )
    selection.add_argument(
        "--ei",
        dest="rules",
        metavar="INDEX",
        type=int,
        action=_RuleAction,
        factory=EnableByIndex,
        help="Enable a patch by its index in the combined catalog",
    )
    selection.add_argument(
        "-d",
        "--disable",
        dest="rules",
        metavar="NAME",
        action=_RuleAction,
        factory=DisableByName,
        help="Disable a patch by name",
    )
    selection.add_argument(
        "--di",
        dest="rules",
        metavar="INDEX",
        type=int,
        action=_RuleAction,
        factory=DisableByIndex,
        help="Disable a patch by its index in the combined catalog",
    )
    selection.add_argument(
        "-O",
        "--options",
        metavar="KEY[=VALUE]",
        action=_OptionAction,
        help="Option override for the preceding enable rule (VALUE is parsed as JSON)",
    )
    selection.add_argument(
        "--exclusive",
        action="store_true",
        help="Only run patches that are explicitly enabled",
    )
    selection.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Run patches even if the package version is not listed as compatible",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="patchrun", description="Select and apply patches")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug messages",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    listing = subparsers.add_parser("list", help="List the patches of one or more bundles")
    listing.add_argument(
        "-p",
        "--patches",
        dest="bundles",
        metavar="BUNDLE",
        type=Path,
        action="append",
        required=True,
        help="Patch bundle to load (repeatable)",
    )

    patch = subparsers.add_parser("patch", help="Patch an artifact")
    patch.add_argument("artifact", type=Path, help="Artifact to patch (.apk or split bundle)")
    patch.add_argument(
        "-p",
        "--patches",
        dest="bundles",
        metavar="BUNDLE",
        type=Path,
        action="append",
        required=True,
        help="Patch bundle to load (repeatable)",
    )
    _add_selection_arguments(patch)
    patch.set_defaults(rules=[])

    patch.add_argument("-o", "--out", dest="output", type=Path, help="Output artifact path")
    patch.add_argument(
        "-i",
        "--install",
        dest="install",
        metavar="SERIAL",
        nargs="?",
        const="",
        default=None,
        help="Install on a device (first available when SERIAL is omitted)",
    )
    patch.add_argument(
        "--mount",
        action="store_true",
        help="Mount the artifact over the installed package instead of installing it",
    )
    patch.add_argument("--keystore", type=Path, help="Keystore used to sign the artifact")
    patch.add_argument("--keystore-password", help="Keystore password")
    patch.add_argument(
        "--keystore-entry-alias",
        default=DEFAULT_KEYSTORE_ALIAS,
        help="Alias of the signing key in the keystore",
    )
    patch.add_argument(
        "--keystore-entry-password",
        default="",
        help="Password of the signing key",
    )
    patch.add_argument(
        "--signer",
        default=DEFAULT_SIGNER_NAME,
        help="Signer name written into the signature",
    )
    patch.add_argument(
        "-t",
        "--temporary-files-path",
        dest="temporary_dir",
        type=Path,
        help="Directory for intermediate files",
    )
    patch.add_argument("--unsigned", action="store_true", help="Do not sign the artifact")
    patch.add_argument(
        "--rip-lib",
        dest="rip_libs",
        metavar="ABI",
        action="append",
        default=[],
        help="Remove native libraries of an ABI (repeatable)",
    )
    patch.add_argument(
        "--options-file",
        "--legacy-options",
        dest="options_file",
        type=Path,
        help="JSON file holding patch option values",
    )
    patch.add_argument(
        "--custom-aapt2-binary",
        dest="aapt2_binary",
        type=Path,
        help="AAPT2 binary the engine compiles resources with",
    )
    patch.add_argument(
        "--purge",
        action="store_true",
        help="Delete the temporary files directory and leftovers of earlier runs after patching",
    )

    return parser.parse_args(list(argv))


def _build_request(args: argparse.Namespace) -> PatchRequest:
    return PatchRequest(
        artifact=args.artifact,
        bundles=tuple(args.bundles),
        rules=tuple(args.rules),
        exclusive=args.exclusive,
        force=args.force,
        output=args.output,
        temporary_dir=args.temporary_dir,
        options_file=args.options_file,
        keystore=args.keystore,
        keystore_password=args.keystore_password,
        keystore_alias=args.keystore_entry_alias,
        keystore_entry_password=args.keystore_entry_password,
        signer_name=args.signer,
        unsigned=args.unsigned,
        rip_libs=tuple(args.rip_libs),
        install=args.install is not None,
        device_serial=args.install or None,
        mount=args.mount,
        purge=args.purge,
        aapt2_binary=args.aapt2_binary,
    )


def _format_patch(patch: Patch) -> list[str]:
    header = f"{patch.index:>4}  {patch.name}"
    if not patch.use:
        header += " (disabled by default)"
    lines = [header]
    if patch.description:
        lines.append(f"      {patch.description}")
    if patch.compatible_packages:
        for package, versions in patch.compatible_packages.items():
            accepted = ", ".join(sorted(versions)) if versions is not None else "any version"
            lines.append(f"      {package}: {accepted}")
    lines += [f"      option {option.key} = {option.default!r}" for option in patch.options]
    return lines


def _run_list(args: argparse.Namespace) -> int:
    try:
        catalog = list_patches(args.bundles)
    except ConfigurationError as exc:
        log.error("%s", exc)  # noqa: TRY400
        return EXIT_CONFIGURATION
    for patch in catalog:
        sys.stdout.write("\n".join(_format_patch(patch)) + "\n")
    return EXIT_OK


def _run_patch(args: argparse.Namespace) -> int:
    ledger = ResultsLedger()
    try:
        request = _build_request(args)
        collaborators = build_collaborators(renderer=TerminalProgressRenderer(stream=sys.stdout))
        result = patch_artifact(request, collaborators=collaborators, ledger=ledger)
    except ConfigurationError as exc:
        log.error("%s", exc)  # noqa: TRY400
        return EXIT_CONFIGURATION
    except (EngineError, ArtifactError):
        log.exception("Patching aborted")
        return EXIT_FAILED
    except KeyboardInterrupt:
        log.warning("Closed by user (Ctrl+C)")
        ledger.interrupted = True
        print_summary(ledger, sys.stdout)
        return EXIT_INTERRUPTED

    print_summary(ledger, sys.stdout)
    if result.interrupted:
        return EXIT_INTERRUPTED
    return result.exit_code


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    if parsed_args.command == "list":
        sys.exit(_run_list(parsed_args))
    sys.exit(_run_patch(parsed_args))


if __name__ == "__main__":
    main()
