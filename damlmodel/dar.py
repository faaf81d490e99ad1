"""Reading application archive containers (zip files carrying a manifest)."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import structlog

from .config import DecoderSettings, get_settings
from .decoder import DecodedArchive, PackageDecoder
from .errors import ArchiveFormatError
from .resource_limits import ResourceBudget

logger = structlog.get_logger(__name__)

MANIFEST_PATH = "META-INF/MANIFEST.MF"
DALF_SUFFIX = ".dalf"


@dataclass(frozen=True)
class Manifest:
    main_dalf: str = ""
    dalfs: Tuple[str, ...] = ()
    format: str = ""
    encryption: str = ""
    sdk_version: str = ""
    created_by: str = ""
    version: str = ""
    name: str = ""
    headers: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def dependencies(self) -> Tuple[str, ...]:
        return tuple(path for path in self.dalfs if path != self.main_dalf)

    @property
    def package_name(self) -> str:
        return self._split_name()[0]

    @property
    def package_version(self) -> str:
        return self._split_name()[1]

    def _split_name(self) -> Tuple[str, str]:
        # ``Name: rental-0.1.0`` carries the package name and version.
        base, sep, tail = self.name.rpartition("-")
        if sep and base and tail[:1].isdigit():
            return base, tail
        return self.name, ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "main_dalf": self.main_dalf,
            "dalfs": list(self.dalfs),
            "format": self.format,
            "encryption": self.encryption,
            "sdk_version": self.sdk_version,
            "created_by": self.created_by,
            "version": self.version,
            "name": self.name,
        }


_HEADER_FIELDS = {
    "Main-Dalf": "main_dalf",
    "Format": "format",
    "Encryption": "encryption",
    "Sdk-Version": "sdk_version",
    "Created-By": "created_by",
    "Manifest-Version": "version",
    "Name": "name",
}


def parse_manifest(text: str) -> Manifest:
    """Parse the main section of a JAR-style manifest.

    Long values are wrapped onto continuation lines that begin with a single
    space. Parsing stops at the first blank line.
    """

    headers: Dict[str, str] = {}
    current: Optional[str] = None
    for line in text.splitlines():
        if not line.strip():
            if headers:
                break
            continue
        if line.startswith(" "):
            if current is None:
                raise ArchiveFormatError("manifest continuation line without a header", {"line": line})
            headers[current] += line[1:]
            continue
        key, sep, value = line.partition(":")
        if not sep or not key.strip():
            raise ArchiveFormatError("malformed manifest line", {"line": line})
        current = key.strip()
        headers[current] = value[1:] if value.startswith(" ") else value

    values = {attr: headers.get(header, "").strip() for header, attr in _HEADER_FIELDS.items()}
    dalfs = tuple(item.strip() for item in headers.get("Dalfs", "").split(",") if item.strip())
    return Manifest(dalfs=dalfs, headers=headers, **values)


class DarArchive:
    """An archive container read fully into memory."""

    def __init__(
        self,
        entries: Dict[str, bytes],
        manifest: Manifest,
        timestamps: Optional[Dict[str, str]] = None,
        source: str = "",
    ) -> None:
        self._entries = entries
        self.manifest = manifest
        self._timestamps = timestamps or {}
        self.source = source

    @classmethod
    def open(cls, path, budget: Optional[ResourceBudget] = None) -> "DarArchive":
        path = Path(path)
        budget = budget or ResourceBudget()
        try:
            budget.ensure_archive_bytes(path.stat().st_size)
            with zipfile.ZipFile(path) as archive:
                entries: Dict[str, bytes] = {}
                timestamps: Dict[str, str] = {}
                for info in archive.infolist():
                    if info.is_dir():
                        continue
                    budget.ensure_archive_bytes(info.file_size)
                    entries[info.filename] = archive.read(info)
                    timestamps[info.filename] = datetime(*info.date_time).isoformat()
        except zipfile.BadZipFile as exc:
            raise ArchiveFormatError(f"{path} is not a zip container", {"path": str(path)}) from exc
        except OSError as exc:
            raise ArchiveFormatError(f"cannot read {path}: {exc}", {"path": str(path)}) from exc

        raw_manifest = entries.get(MANIFEST_PATH)
        if raw_manifest is None:
            raise ArchiveFormatError(f"{path} has no {MANIFEST_PATH}", {"path": str(path)})
        try:
            manifest = parse_manifest(raw_manifest.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise ArchiveFormatError("manifest is not valid UTF-8", {"path": str(path)}) from exc
        logger.debug("dar_opened", path=str(path), entries=len(entries), main_dalf=manifest.main_dalf)
        return cls(entries, manifest, timestamps, source=str(path))

    def names(self) -> List[str]:
        return sorted(self._entries)

    def dalf(self, path: str) -> bytes:
        try:
            return self._entries[path]
        except KeyError as exc:
            raise ArchiveFormatError(f"container has no entry {path!r}", {"path": path}) from exc

    def main_dalf(self) -> bytes:
        if not self.manifest.main_dalf:
            raise ArchiveFormatError("manifest does not declare Main-Dalf", {"source": self.source})
        return self.dalf(self.manifest.main_dalf)

    def created_at(self, path: str) -> Optional[str]:
        return self._timestamps.get(path)

    @property
    def dependencies(self) -> List[str]:
        """Every module other than the main one, as listed by the manifest or found in the container."""
        if self.manifest.dalfs:
            return list(self.manifest.dependencies)
        return [name for name in self.names() if name.endswith(DALF_SUFFIX) and name != self.manifest.main_dalf]


def unzip_dar(path, destination) -> List[Path]:
    """Extract the container at ``path`` below ``destination``.

    Entries that would land outside ``destination`` are rejected before
    anything is written.
    """

    destination = Path(destination).resolve()
    try:
        with zipfile.ZipFile(path) as archive:
            members = archive.infolist()
            for info in members:
                target = (destination / info.filename).resolve()
                if target != destination and destination not in target.parents:
                    raise ArchiveFormatError(
                        f"entry {info.filename!r} escapes the extraction directory", {"entry": info.filename}
                    )
            destination.mkdir(parents=True, exist_ok=True)
            written: List[Path] = []
            for info in members:
                archive.extract(info, destination)
                if not info.is_dir():
                    written.append(destination / info.filename)
    except zipfile.BadZipFile as exc:
        raise ArchiveFormatError(f"{path} is not a zip container", {"path": str(path)}) from exc
    logger.info("dar_extracted", path=str(path), destination=str(destination), files=len(written))
    return written


def load_package(path, settings: Optional[DecoderSettings] = None) -> DecodedArchive:
    """Open the container at ``path`` and decode its main module."""

    settings = settings or get_settings()
    decoder = PackageDecoder(settings)
    container = DarArchive.open(path, decoder.budget)
    main = container.manifest.main_dalf
    logger.info("dar_decode", path=str(path), main_dalf=main, dependencies=len(container.dependencies))
    return decoder.decode(
        container.main_dalf(),
        manifest=container.manifest,
        created_at=container.created_at(main),
        dependencies=container.dependencies,
    )


__all__ = ["DarArchive", "MANIFEST_PATH", "Manifest", "load_package", "parse_manifest", "unzip_dar"]
