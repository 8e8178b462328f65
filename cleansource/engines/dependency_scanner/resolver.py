"""BuildToolResolver: detect ecosystems and aggregate their dependency roots."""

from __future__ import annotations

from pathlib import Path

import structlog

# Ensure scanners are registered before any detection runs.
import cleansource.engines.dependency_scanner.scanners  # noqa: F401
from cleansource.core.config import ScanConfig
from cleansource.engines.dependency_scanner.models import DependencyRoot
from cleansource.engines.dependency_scanner.registry import (
    ScannerDescriptor,
    discover_scanners,
)
from cleansource.exceptions import ExecutableNotFoundError, ScanError


class BuildToolResolver:
    """Run every detected scanner and keep whatever succeeds.

    One ecosystem failing (missing manifest, malformed XML, broken tool)
    never affects the others, and :meth:`resolve` never raises.
    """

    def __init__(
        self,
        config: ScanConfig,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._config = config
        self._log = log or structlog.get_logger("cleansource.resolver")

    def detect(self, root_dir: str | Path) -> list[ScannerDescriptor]:
        """Descriptors for the marker files present directly under *root_dir*."""
        root = Path(root_dir)
        if not root.is_dir():
            return []
        return discover_scanners(root)

    def detected_tools(self, root_dir: str | Path) -> list[str]:
        return [desc.tool for desc in self.detect(root_dir)]

    def resolve(self, root_dir: str | Path) -> list[DependencyRoot]:
        root = Path(root_dir)
        if not root.is_dir():
            self._log.warning("resolver.root_missing", root=str(root))
            return []

        descriptors = self.detect(root)
        self._log.info(
            "resolver.detected",
            root=str(root),
            tools=[d.tool for d in descriptors],
        )

        results: list[DependencyRoot] = []
        for desc in descriptors:
            results.extend(self._run_scanner(desc, root))

        self._log.info(
            "resolver.completed",
            roots=len(results),
            dependencies=sum(len(r.dependencies) for r in results),
        )
        return results

    def _run_scanner(self, desc: ScannerDescriptor, root: Path) -> list[DependencyRoot]:
        log = self._log.bind(tool=desc.tool, marker=desc.marker)
        scanner = desc.factory(root, self._config, log)

        try:
            scanner.find_executable()
        except ExecutableNotFoundError as exc:
            log.info("resolver.executable_missing", error=str(exc))

        try:
            scanner.find_manifest()
        except ScanError as exc:
            log.warning("resolver.scanner_skipped", step="find_manifest", error=str(exc))
            return []

        try:
            roots = scanner.execute()
        except ScanError as exc:
            log.warning("resolver.scanner_skipped", step="execute", error=str(exc))
            return []
        except Exception:
            log.exception("resolver.scanner_failed", step="execute")
            return []

        log.info(
            "resolver.scanner_done",
            roots=len(roots),
            dependencies=sum(len(r.dependencies) for r in roots),
        )
        return roots
