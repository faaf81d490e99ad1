"""Decoder and type-model extractor for DAML-LF application archives."""

from .config import DecoderSettings, get_settings
from .dar import DarArchive, Manifest, load_package, parse_manifest, unzip_dar
from .decoder import DecodedArchive, PackageDecoder, decode_archive
from .diagnostics import Diagnostic, DiagnosticLog, Severity
from .errors import (
    ArchiveFormatError,
    DamlModelError,
    DecodeDeadlineExceeded,
    IndexOutOfRange,
    MissingTypeInformation,
    ResourceBudgetExceeded,
    UnsupportedIRVersion,
    UnsupportedTypeShape,
)
from .model import Choice, Field, KeyInfo, Package, PackageMetadata, StructuredType, TypeKind
from .versioning import LanguageVersion, supported_generations

__version__ = "0.1.0"

__all__ = [
    "ArchiveFormatError",
    "Choice",
    "DamlModelError",
    "DarArchive",
    "DecodeDeadlineExceeded",
    "DecodedArchive",
    "DecoderSettings",
    "Diagnostic",
    "DiagnosticLog",
    "Field",
    "IndexOutOfRange",
    "KeyInfo",
    "LanguageVersion",
    "Manifest",
    "MissingTypeInformation",
    "Package",
    "PackageDecoder",
    "PackageMetadata",
    "ResourceBudgetExceeded",
    "Severity",
    "StructuredType",
    "TypeKind",
    "UnsupportedIRVersion",
    "UnsupportedTypeShape",
    "decode_archive",
    "get_settings",
    "load_package",
    "parse_manifest",
    "supported_generations",
    "unzip_dar",
]
