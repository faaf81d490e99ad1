"""Exception hierarchy for archive decoding."""
from typing import Any, Dict


class DamlModelError(Exception):
    """Base exception for decoder errors."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ArchiveFormatError(DamlModelError):
    """Raised when the archive envelope, payload or container is malformed."""
    pass


class UnsupportedIRVersion(DamlModelError):
    """Raised when the payload carries an IR generation no walker understands."""

    def __init__(self, generation: str, supported=()):
        self.generation = generation
        super().__init__(
            f"unsupported IR generation {generation or '<unset>'!r}",
            {"generation": generation, "supported": list(supported)},
        )


class IndexOutOfRange(DamlModelError):
    """Raised when an interned index falls outside its table."""

    def __init__(self, table: str, index: int, size: int):
        self.table = table
        self.index = index
        self.size = size
        super().__init__(
            f"{table} index {index} out of range (table size {size})",
            {"table": table, "index": index, "size": size},
        )


class UnsupportedTypeShape(DamlModelError):
    """Raised when a type expression has a shape the resolver cannot describe."""

    def __init__(self, shape: str):
        self.shape = shape
        super().__init__(f"unsupported type shape {shape or '<unset>'!r}", {"shape": shape})


class MissingTypeInformation(DamlModelError):
    """Raised when a declaration omits a type it is required to carry.

    ``code`` is the diagnostic code the walker reports for the omission.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None, code: str = "missing_type_information"):
        self.code = code
        super().__init__(message, details)


class ResourceBudgetExceeded(DamlModelError):
    """Raised when an archive exceeds configured resource limits."""
    pass


class DecodeDeadlineExceeded(DamlModelError):
    """Raised when the caller's deadline elapses before all modules are walked."""
    pass


def error_details(error: Exception) -> Dict[str, Any]:
    """
    Render an exception as a plain dictionary for diagnostics and CLI output.

    Args:
        error: The exception that occurred

    Returns:
        Dictionary with the error type, message and details
    """
    return {
        "error": type(error).__name__,
        "message": getattr(error, "message", str(error)),
        "details": getattr(error, "details", {}),
    }
