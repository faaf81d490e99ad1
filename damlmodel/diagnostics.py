"""Structured diagnostics collected while decoding.

Every skip or fallback decision made by the decoder is recorded as a
:class:`Diagnostic` on a :class:`DiagnosticLog`. The log is returned alongside
the decoded package so callers can assert on it; each entry is also emitted as
a ``decode_diagnostic`` log event.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

import structlog

logger = structlog.get_logger(__name__)


class Severity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    code: str
    message: str
    declaration: Optional[str] = None
    module: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "declaration": self.declaration,
            "module": self.module,
        }


class DiagnosticLog:
    """Append-only accumulator of diagnostics for one walk or decode."""

    def __init__(self, module: Optional[str] = None, emit: bool = True) -> None:
        self.module = module
        self._emit = emit
        self._entries: List[Diagnostic] = []

    def report(
        self,
        severity: Severity,
        code: str,
        message: str,
        declaration: Optional[str] = None,
        module: Optional[str] = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(
            severity=Severity(severity),
            code=code,
            message=message,
            declaration=declaration,
            module=module if module is not None else self.module,
        )
        self._entries.append(diagnostic)
        if self._emit:
            getattr(logger, diagnostic.severity.value)(
                "decode_diagnostic",
                code=code,
                diagnostic=message,
                declaration=declaration,
                module=diagnostic.module,
            )
        return diagnostic

    def debug(self, code: str, message: str, declaration: Optional[str] = None) -> Diagnostic:
        return self.report(Severity.DEBUG, code, message, declaration)

    def info(self, code: str, message: str, declaration: Optional[str] = None) -> Diagnostic:
        return self.report(Severity.INFO, code, message, declaration)

    def warning(self, code: str, message: str, declaration: Optional[str] = None) -> Diagnostic:
        return self.report(Severity.WARNING, code, message, declaration)

    def error(self, code: str, message: str, declaration: Optional[str] = None) -> Diagnostic:
        return self.report(Severity.ERROR, code, message, declaration)

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        """Append already-emitted diagnostics without logging them again."""

        self._entries.extend(diagnostics)

    def by_code(self, code: str) -> List[Diagnostic]:
        return [entry for entry in self._entries if entry.code == code]

    def for_declaration(self, declaration: str) -> List[Diagnostic]:
        return [entry for entry in self._entries if entry.declaration == declaration]

    def codes(self) -> List[str]:
        return [entry.code for entry in self._entries]

    def to_list(self) -> List[Diagnostic]:
        return list(self._entries)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["Diagnostic", "DiagnosticLog", "Severity"]
