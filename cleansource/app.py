"""ScanApplication: fingerprint a source tree and resolve its dependencies.

The orchestrator runs the fingerprint engine and the build-tool resolver
over the same root and leaves their artifacts in ``config.to_path`` for the
upload step:

    fingerprints.wfp    one ``file=...,hash=...,size=...`` line per file
    dependencies.json   list of dependency roots (only if build_depend)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from cleansource.core.config import ScanConfig
from cleansource.engines.dependency_scanner import BuildToolResolver, DependencyRoot
from cleansource.engines.fingerprint import FingerprintEngine
from cleansource.exceptions import ScanDirectoryNotFoundError, ScanError
from cleansource.utils import calculate_dir_size, is_dir_empty

DEPENDENCY_FILENAME = "dependencies.json"


@dataclass
class ScanOutput:
    """Everything the upload step needs from one scan."""

    wfp_file: Path
    dependency_file: Path | None = None
    dependency_roots: list[DependencyRoot] = field(default_factory=list)
    dir_size: int = 0


class ScanApplication:
    def __init__(
        self,
        config: ScanConfig,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._config = config
        self._log = log or structlog.get_logger("cleansource.app")

    def run(self) -> ScanOutput | None:
        """Run a source scan of ``config.task_dir``.

        Returns None (with a warning) when the directory is empty.

        Raises:
            ScanDirectoryNotFoundError: the scan directory does not exist.
            FingerprintWriteError: the fingerprint artifact could not be written.
        """
        if self._config.task_dir is None:
            raise ScanError("no scan directory configured")
        task_dir = Path(self._config.task_dir)
        if not task_dir.is_dir():
            raise ScanDirectoryNotFoundError(str(task_dir))

        if is_dir_empty(task_dir):
            self._log.warning("scan.empty_directory", task_dir=str(task_dir))
            return None

        try:
            dir_size = calculate_dir_size(task_dir)
        except ScanError as exc:
            self._log.warning("scan.dir_size_failed", error=str(exc))
            dir_size = 0
        self._log.info("scan.started", task_dir=str(task_dir), dir_size=dir_size)

        wfp_file = FingerprintEngine(self._config, log=self._log).generate(task_dir)
        output = ScanOutput(wfp_file=wfp_file, dir_size=dir_size)

        if self._config.build_depend:
            roots = BuildToolResolver(self._config, log=self._log).resolve(task_dir)
            output.dependency_roots = roots
            output.dependency_file = self._write_dependencies(roots)

        self._log.info(
            "scan.completed",
            wfp_file=str(output.wfp_file),
            dependency_file=str(output.dependency_file) if output.dependency_file else None,
            roots=len(output.dependency_roots),
        )
        return output

    def _write_dependencies(self, roots: list[DependencyRoot]) -> Path | None:
        path = Path(self._config.to_path) / DEPENDENCY_FILENAME
        try:
            path.write_text(
                json.dumps([r.to_dict() for r in roots], indent=2) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            self._log.warning("scan.dependency_write_failed", path=str(path), error=str(exc))
            return None
        return path
