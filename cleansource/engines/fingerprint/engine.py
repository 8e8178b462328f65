"""FingerprintEngine: walk a source tree and write one digest line per file.

The directory walk runs on the caller's thread. Digests are computed on a
bounded thread pool and handed through a bounded queue to a single writer
thread, which owns the output artifact. ``generate`` returns only after every
digest task has finished and the writer has flushed and exited.
"""

from __future__ import annotations

import os
import queue
import stat
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

import structlog

from cleansource.core.config import ScanConfig
from cleansource.engines.fingerprint.digest import digest_file
from cleansource.engines.fingerprint.models import FileRecord
from cleansource.engines.fingerprint.skip import should_skip
from cleansource.exceptions import FingerprintWriteError, ScanDirectoryNotFoundError

WFP_FILENAME = "fingerprints.wfp"

_QUEUE_SIZE = 100
_DONE = object()


class _RecordWriter(threading.Thread):
    """Single consumer that appends queued records to the artifact."""

    def __init__(self, handle, records: queue.Queue) -> None:
        super().__init__(name="wfp-writer", daemon=True)
        self._handle = handle
        self._records = records
        self.written = 0
        self.error: Exception | None = None

    def run(self) -> None:
        while True:
            item = self._records.get()
            if item is _DONE:
                break
            # Keep draining after a failure so producers never block on put()
            if self.error is not None:
                continue
            try:
                self._handle.write(item.to_line() + "\n")
                self.written += 1
            except Exception as exc:
                self.error = exc
        if self.error is None:
            try:
                self._handle.flush()
            except OSError as exc:
                self.error = exc


class FingerprintEngine:
    """Generate the fingerprint artifact for a directory tree."""

    def __init__(
        self,
        config: ScanConfig,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._config = config
        self._log = log or structlog.get_logger("cleansource.fingerprint")

    @property
    def output_path(self) -> Path:
        return Path(self._config.to_path) / WFP_FILENAME

    def generate(self, root_dir: str | Path) -> Path:
        """Fingerprint every eligible file under *root_dir*.

        Returns the artifact path. Raises :class:`ScanDirectoryNotFoundError`
        before anything is written if *root_dir* is not a directory, and
        :class:`FingerprintWriteError` if the artifact cannot be created or
        written (the partial artifact is removed).
        """
        root = Path(root_dir)
        if not root.is_dir():
            raise ScanDirectoryNotFoundError(str(root_dir))
        root = root.resolve()

        wfp_path = self.output_path
        self._log.info("fingerprint.started", root=str(root), output=str(wfp_path))

        try:
            wfp_path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(wfp_path, "w", encoding="utf-8", errors="surrogateescape", newline="\n")
        except OSError as exc:
            raise FingerprintWriteError(f"failed to create wfp file {wfp_path}: {exc}") from exc

        records: queue.Queue = queue.Queue(maxsize=_QUEUE_SIZE)
        writer = _RecordWriter(handle, records)
        writer.start()

        submitted = 0
        try:
            with ThreadPoolExecutor(
                max_workers=self._config.thread_num,
                thread_name_prefix="wfp-digest",
            ) as pool:
                futures: list[Future] = []
                for abs_path, rel_path in self._iter_eligible(root, wfp_path.resolve()):
                    futures.append(pool.submit(self._fingerprint_one, abs_path, rel_path, records))
                    submitted += 1
                for future in futures:
                    future.result()
        except BaseException:
            records.put(_DONE)
            writer.join()
            handle.close()
            wfp_path.unlink(missing_ok=True)
            raise

        records.put(_DONE)
        writer.join()
        handle.close()

        if writer.error is not None:
            wfp_path.unlink(missing_ok=True)
            raise FingerprintWriteError(
                f"error writing fingerprints to {wfp_path}: {writer.error}"
            ) from writer.error

        self._log.info(
            "fingerprint.completed",
            output=str(wfp_path),
            files_submitted=submitted,
            records_written=writer.written,
        )
        return wfp_path

    def _iter_eligible(self, root: Path, wfp_path: Path):
        """Yield ``(absolute_path, relative_posix_path)`` for files to digest."""

        def _on_error(exc: OSError) -> None:
            self._log.debug("fingerprint.walk_error", path=exc.filename, error=str(exc))

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            current = Path(dirpath)
            rel_dir = current.relative_to(root)
            dirnames[:] = [
                d for d in dirnames if not should_skip(rel_dir / d, is_dir=True)
            ]
            for name in filenames:
                abs_path = current / name
                if abs_path == wfp_path:
                    continue
                try:
                    st = abs_path.lstat()
                except OSError as exc:
                    self._log.debug("fingerprint.stat_failed", path=str(abs_path), error=str(exc))
                    continue
                if not stat.S_ISREG(st.st_mode):
                    continue
                rel_path = (rel_dir / name).as_posix()
                if should_skip(rel_path, size=st.st_size):
                    continue
                yield abs_path, rel_path

    def _fingerprint_one(self, abs_path: Path, rel_path: str, records: queue.Queue) -> None:
        try:
            result = digest_file(abs_path)
        except OSError as exc:
            self._log.warning("fingerprint.read_failed", path=rel_path, error=str(exc))
            return
        if result is None:
            return
        digest, size = result
        records.put(FileRecord(path=rel_path, digest=digest, size=size))
