"""Resource budgeting helpers for decoding untrusted archives."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ResourceBudgetExceeded


@dataclass(frozen=True)
class ResourceBudget:
    """Declarative limits covering the container and payload stages."""

    max_archive_bytes: int = 256 * 1024 * 1024
    max_modules: int = 10_000

    @classmethod
    def from_settings(cls, settings) -> "ResourceBudget":
        return cls(max_archive_bytes=settings.max_archive_bytes, max_modules=settings.max_modules)

    def ensure_archive_bytes(self, size: int) -> None:
        if size > self.max_archive_bytes:
            raise ResourceBudgetExceeded(
                f"archive of {size} bytes exceeds budgeted maximum {self.max_archive_bytes}",
                {"size": size, "limit": self.max_archive_bytes},
            )

    def ensure_modules(self, count: int) -> None:
        if count > self.max_modules:
            raise ResourceBudgetExceeded(
                f"module count {count} exceeds budgeted maximum {self.max_modules}",
                {"count": count, "limit": self.max_modules},
            )


__all__ = ["ResourceBudget", "ResourceBudgetExceeded"]
