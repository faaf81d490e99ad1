"""Archive envelope decoding and dispatch on the IR generation."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Dict, Tuple, Type

import structlog
from google.protobuf.message import DecodeError

from .errors import ArchiveFormatError, UnsupportedIRVersion
from .generations import LF1Walker, LF2Walker
from .ir import PACKAGE_CLASSES, Archive, ArchivePayload, enum_value_name
from .walker import ModuleWalker

logger = structlog.get_logger(__name__)

_VERSION_RE = re.compile(r"^(\d+)\.(\d+|dev)$")

DEV_MINOR = 9999

WALKERS: Dict[str, Type[ModuleWalker]] = {
    "daml_lf_1": LF1Walker,
    "daml_lf_2": LF2Walker,
}


@dataclass(frozen=True, order=True)
class LanguageVersion:
    """IR language version ``<major>.<minor>``; ``dev`` sorts after every release."""

    major: int
    minor: int

    def __str__(self) -> str:  # pragma: no cover - trivial repr
        return self.text

    @property
    def text(self) -> str:
        minor = "dev" if self.minor == DEV_MINOR else str(self.minor)
        return f"{self.major}.{minor}"

    @classmethod
    def parse(cls, value: str) -> "LanguageVersion":
        match = _VERSION_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid language version '{value}'")
        minor_text = match.group(2)
        minor = DEV_MINOR if minor_text == "dev" else int(minor_text)
        return cls(int(match.group(1)), minor)


@dataclass(frozen=True)
class Envelope:
    """Decoded outer archive: hash, raw payload, the payload union and its package."""

    hash: str
    hash_function: str
    payload_bytes: bytes
    payload: object
    package: object = None

    @property
    def generation(self) -> str:
        return self.payload.WhichOneof("Sum") or ""

    @property
    def minor(self) -> str:
        return self.payload.minor


def supported_generations() -> Tuple[str, ...]:
    return tuple(WALKERS)


def _parse(message, data: bytes, what: str, archive_hash: str):
    try:
        message.ParseFromString(data)
    except DecodeError as exc:
        raise ArchiveFormatError(f"malformed {what}", {"reason": str(exc), "hash": archive_hash}) from exc
    return message


def read_envelope(data: bytes) -> Envelope:
    """Decode the archive, its payload and the package it carries.

    Malformed input at any of the three layers raises ``ArchiveFormatError``.
    A generation without a known package class leaves ``package`` unset;
    :func:`walker_for` rejects it.
    """

    archive = Archive()
    try:
        archive.ParseFromString(bytes(data))
    except DecodeError as exc:
        raise ArchiveFormatError("malformed archive envelope", {"reason": str(exc)}) from exc
    payload = _parse(ArchivePayload(), archive.payload, "archive payload", archive.hash)
    generation = payload.WhichOneof("Sum") or ""
    package = None
    package_cls = PACKAGE_CLASSES.get(generation)
    if package_cls is not None:
        package = _parse(package_cls(), getattr(payload, generation), f"{generation} package", archive.hash)
    return Envelope(
        hash=archive.hash,
        hash_function=enum_value_name(archive, "hash_function"),
        payload_bytes=archive.payload,
        payload=payload,
        package=package,
    )


def verify_hash(envelope: Envelope) -> None:
    if envelope.hash_function != "SHA256":
        raise ArchiveFormatError(
            f"unsupported hash function {envelope.hash_function}", {"hash_function": envelope.hash_function}
        )
    digest = hashlib.sha256(envelope.payload_bytes).hexdigest()
    if digest != envelope.hash:
        raise ArchiveFormatError(
            "archive hash does not match its payload", {"expected": envelope.hash, "actual": digest}
        )


def walker_for(envelope: Envelope, max_expression_depth: int = 256) -> ModuleWalker:
    """Return the walker for the envelope's generation or raise ``UnsupportedIRVersion``."""

    generation = envelope.generation
    walker_cls = WALKERS.get(generation)
    if walker_cls is None:
        logger.warning("unsupported_generation", generation=generation, hash=envelope.hash)
        raise UnsupportedIRVersion(generation, supported_generations())
    return walker_cls(envelope.package, max_expression_depth=max_expression_depth)


def language_version(envelope: Envelope, walker: ModuleWalker) -> LanguageVersion:
    minor = envelope.minor or "0"
    try:
        return LanguageVersion.parse(f"{walker.major}.{minor}")
    except ValueError as exc:
        raise ArchiveFormatError(f"invalid minor version {minor!r}", {"minor": minor}) from exc


__all__ = [
    "DEV_MINOR",
    "Envelope",
    "LanguageVersion",
    "WALKERS",
    "language_version",
    "read_envelope",
    "supported_generations",
    "verify_hash",
    "walker_for",
]
