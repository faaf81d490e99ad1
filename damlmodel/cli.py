"""Command line interface for inspecting application archives."""

from __future__ import annotations

import argparse
import json
import sys
import zipfile
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import ValidationError

from .config import DecoderSettings
from .dar import DarArchive, load_package
from .decoder import DecodedArchive, PackageDecoder
from .errors import DamlModelError
from .logging_config import configure_from_settings
from .model import StructuredType


class CommandError(RuntimeError):
    """Raised when a CLI sub-command fails with a user facing error."""


def _settings(args: argparse.Namespace) -> DecoderSettings:
    overrides: Dict[str, Any] = {}
    if getattr(args, "workers", None) is not None:
        overrides["max_workers"] = args.workers
    if getattr(args, "deadline", None) is not None:
        overrides["deadline_seconds"] = args.deadline
    if getattr(args, "verify_hash", False):
        overrides["verify_hash"] = True
    if getattr(args, "log_level", None):
        overrides["log_level"] = args.log_level
    if getattr(args, "log_format", None):
        overrides["log_format"] = args.log_format
    try:
        return DecoderSettings(**overrides)
    except ValidationError as exc:
        raise CommandError(f"Invalid settings: {exc}") from exc


def _emit(payload: Dict[str, Any], args: argparse.Namespace) -> bool:
    if getattr(args, "yaml", False):
        print(yaml.safe_dump(payload, sort_keys=False))
        return True
    if getattr(args, "json", False):
        print(json.dumps(payload, indent=2))
        return True
    return False


def _decode_path(path: Path, settings: DecoderSettings) -> DecodedArchive:
    if not path.exists():
        raise CommandError(f"Input '{path}' does not exist")
    if zipfile.is_zipfile(path):
        return load_package(path, settings)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise CommandError(f"Unable to read '{path}': {exc}") from exc
    return PackageDecoder(settings).decode(data)


def _describe(declaration: StructuredType) -> str:
    label = "template" if declaration.is_template else declaration.kind.value
    suffix = " [incomplete]" if declaration.incomplete else ""
    module = f" ({declaration.module})" if declaration.module else ""
    return f"  {label} {declaration.name}{module}{suffix}"


def inspect_command(args: argparse.Namespace) -> None:
    settings = _settings(args)
    configure_from_settings(settings)
    try:
        decoded = _decode_path(Path(args.archive), settings)
    except DamlModelError as exc:
        raise CommandError(str(exc)) from exc

    payload = decoded.to_dict()
    if not args.show_diagnostics:
        payload.pop("diagnostics", None)
    if _emit(payload, args):
        return

    package = decoded.package
    print(f"Package: {package.package_id or '<no hash>'}")
    print(f"LF version: {package.lf_version}")
    if package.metadata.name:
        print(f"Name: {package.metadata.name} {package.metadata.version}".rstrip())
    if package.metadata.sdk_version:
        print(f"SDK version: {package.metadata.sdk_version}")
    print(
        f"Declarations: {len(package)} "
        f"({len(package.templates())} templates, {len(package.interfaces())} interfaces)"
    )
    for declaration in package:
        print(_describe(declaration))
        for field in declaration.fields:
            optional = " (optional)" if field.is_optional else ""
            print(f"    field {field.name}: {field.type or '?'}{optional}")
        for choice in declaration.choices:
            consuming = "consuming" if choice.is_consuming else "non-consuming"
            print(f"    choice {choice.name} [{consuming}] ({choice.arg_type or '?'}) -> {choice.return_type or '?'}")
        if declaration.key is not None:
            print(f"    key {declaration.key.field_name or '?'}: {declaration.key.type or '?'}")
    if args.show_diagnostics:
        print("Diagnostics:")
        for entry in decoded.diagnostics:
            where = entry.declaration or entry.module or "-"
            print(f"  [{entry.severity.value}] {entry.code} {where}: {entry.message}")
    elif decoded.diagnostics:
        print(f"Diagnostics: {len(decoded.diagnostics)} (pass --show-diagnostics to list)")


def manifest_command(args: argparse.Namespace) -> None:
    path = Path(args.archive)
    if not path.exists():
        raise CommandError(f"Input '{path}' does not exist")
    try:
        container = DarArchive.open(path)
    except DamlModelError as exc:
        raise CommandError(str(exc)) from exc

    manifest = container.manifest
    payload = manifest.to_dict()
    payload["dependencies"] = container.dependencies
    if _emit(payload, args):
        return
    print(f"Archive: {path}")
    for key, value in payload.items():
        if isinstance(value, list):
            print(f"{key}: {len(value)}")
            for item in value:
                print(f"  - {item}")
        else:
            print(f"{key}: {value}")


def _add_output_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Emit JSON output")
    parser.add_argument("--yaml", action="store_true", help="Emit YAML output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="damlmodel", description=__doc__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Decode an archive and print its type model")
    inspect_parser.add_argument("archive", help="Container (.dar) or single module (.dalf)")
    _add_output_flags(inspect_parser)
    inspect_parser.add_argument("--workers", type=int, help="Worker threads used to walk modules")
    inspect_parser.add_argument("--deadline", type=float, help="Abort when decoding takes longer (seconds)")
    inspect_parser.add_argument("--verify-hash", action="store_true", help="Check the payload against its hash")
    inspect_parser.add_argument(
        "--show-diagnostics", action="store_true", help="List every diagnostic reported while decoding"
    )
    inspect_parser.add_argument("--log-level", help="Logging level (default: DAMLMODEL_LOG_LEVEL or WARNING)")
    inspect_parser.add_argument("--log-format", choices=("json", "console"), help="Log renderer")
    inspect_parser.set_defaults(func=inspect_command)

    manifest_parser = subparsers.add_parser("manifest", help="Print the manifest of a container")
    manifest_parser.add_argument("archive", help="Container (.dar)")
    _add_output_flags(manifest_parser)
    manifest_parser.set_defaults(func=manifest_command)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except CommandError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
