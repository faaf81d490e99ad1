"""Decoding one archive into a :class:`~damlmodel.model.Package`.

Modules are walked independently, inline or on a thread pool, and their
results are merged only after every walk has finished. The merge order
depends on declaration kind, never on completion order: templates of every
module, then interfaces, then plain data types, each in module declaration
order. The first declaration to claim a name keeps it.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from .config import DecoderSettings, get_settings
from .diagnostics import Diagnostic, DiagnosticLog, Severity
from .errors import DecodeDeadlineExceeded
from .model import Package, PackageMetadata, StructuredType
from .resource_limits import ResourceBudget
from .versioning import language_version, read_envelope, verify_hash, walker_for
from .walker import ModuleModel, ModuleWalker

logger = structlog.get_logger(__name__)

MERGE_ORDER = (("templates", "template"), ("interfaces", "interface"), ("data_types", "data type"))


@dataclass
class DecodedArchive:
    hash: str
    package: Package
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def by_code(self, code: str) -> List[Diagnostic]:
        return [entry for entry in self.diagnostics if entry.code == code]

    def to_dict(self) -> Dict[str, object]:
        return {
            "hash": self.hash,
            "package": self.package.to_dict(),
            "diagnostics": [entry.to_dict() for entry in self.diagnostics],
        }


def merge_modules(models: Sequence[ModuleModel], sink: DiagnosticLog) -> Dict[str, StructuredType]:
    """Merge per-module results kind by kind; later claims on a name are dropped."""

    structs: Dict[str, StructuredType] = {}
    for attribute, label in MERGE_ORDER:
        for model in models:
            for name, declaration in getattr(model, attribute).items():
                existing = structs.get(name)
                if existing is not None:
                    sink.report(
                        Severity.WARNING,
                        "name_collision",
                        f"{label} {name} from module {model.name or '<unnamed>'} dropped; "
                        f"the name is already taken by a declaration in {existing.module or '<unnamed>'}",
                        declaration=name,
                        module=model.name,
                    )
                    continue
                structs[name] = declaration
    return structs


class PackageDecoder:
    """Decode archive bytes into a package model."""

    def __init__(
        self,
        settings: Optional[DecoderSettings] = None,
        budget: Optional[ResourceBudget] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self.budget = budget or ResourceBudget.from_settings(self.settings)
        self._clock = clock

    def decode(
        self,
        data: bytes,
        manifest=None,
        created_at: Optional[str] = None,
        dependencies: Optional[Sequence[str]] = None,
    ) -> DecodedArchive:
        started = self._clock()
        deadline = None
        if self.settings.deadline_seconds is not None:
            deadline = started + self.settings.deadline_seconds

        self.budget.ensure_archive_bytes(len(data))
        envelope = read_envelope(data)
        if self.settings.verify_hash:
            verify_hash(envelope)
        walker = walker_for(envelope, self.settings.max_expression_depth)
        version = language_version(envelope, walker)
        modules = walker.modules
        self.budget.ensure_modules(len(modules))

        log = logger.bind(package_id=envelope.hash, generation=walker.generation)
        log.info("decode_started", modules=len(modules), lf_version=version.text, workers=self.settings.max_workers)

        models = self._walk_modules(walker, modules, deadline)

        sink = DiagnosticLog()
        for model in models:
            sink.extend(model.diagnostics)
        structs = merge_modules(models, sink)

        package = Package(
            package_id=envelope.hash,
            lf_version=version.text,
            metadata=self._metadata(walker, manifest, created_at, dependencies),
            structs=structs,
        )
        log.info(
            "decode_finished",
            structs=len(structs),
            diagnostics=len(sink),
            elapsed_ms=round((self._clock() - started) * 1000, 3),
        )
        return DecodedArchive(hash=envelope.hash, package=package, diagnostics=sink.to_list())

    # ------------------------------------------------------------------
    # Module walks
    # ------------------------------------------------------------------
    def _deadline_exceeded(self, walked: int, total: int) -> DecodeDeadlineExceeded:
        logger.warning("decode_deadline_exceeded", walked=walked, modules=total)
        return DecodeDeadlineExceeded(
            f"decode deadline of {self.settings.deadline_seconds}s exceeded after {walked} of {total} modules",
            {"deadline_seconds": self.settings.deadline_seconds, "walked": walked, "modules": total},
        )

    def _check_deadline(self, deadline: Optional[float], walked: int, total: int) -> None:
        if deadline is not None and self._clock() >= deadline:
            raise self._deadline_exceeded(walked, total)

    def _walk_modules(self, walker: ModuleWalker, modules: Sequence, deadline: Optional[float]) -> List[ModuleModel]:
        total = len(modules)
        if self.settings.max_workers <= 1 or total <= 1:
            models: List[ModuleModel] = []
            for module in modules:
                self._check_deadline(deadline, len(models), total)
                models.append(walker.walk(module))
            return models

        def walk_one(index: int, module) -> ModuleModel:
            self._check_deadline(deadline, index, total)
            return walker.walk(module)

        executor = ThreadPoolExecutor(max_workers=self.settings.max_workers, thread_name_prefix="damlmodel-walk")
        try:
            futures = [executor.submit(walk_one, index, module) for index, module in enumerate(modules)]
            models = []
            for future in futures:
                timeout = None if deadline is None else max(0.0, deadline - self._clock())
                try:
                    models.append(future.result(timeout=timeout))
                except FuturesTimeout as exc:
                    raise self._deadline_exceeded(len(models), total) from exc
            return models
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    def _metadata(
        self, walker: ModuleWalker, manifest, created_at: Optional[str], dependencies: Optional[Sequence[str]]
    ) -> PackageMetadata:
        name, version = walker.package_metadata()
        if dependencies is None:
            dependencies = manifest.dependencies if manifest is not None else ()
        if manifest is None:
            return PackageMetadata(
                name=name, version=version, created_at=created_at, dependencies=tuple(dependencies)
            )
        return PackageMetadata(
            name=manifest.package_name or name,
            version=manifest.package_version or version,
            sdk_version=manifest.sdk_version,
            created_by=manifest.created_by,
            created_at=created_at,
            dependencies=tuple(dependencies),
        )


def decode_archive(
    data: bytes,
    manifest=None,
    settings: Optional[DecoderSettings] = None,
    created_at: Optional[str] = None,
) -> DecodedArchive:
    """Decode ``data`` with a fresh :class:`PackageDecoder`."""

    return PackageDecoder(settings).decode(data, manifest=manifest, created_at=created_at)


__all__ = ["DecodedArchive", "PackageDecoder", "decode_archive", "merge_modules"]
