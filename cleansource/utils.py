"""Filesystem helpers used by the scan orchestrator."""

from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from cleansource.exceptions import ScanDirectoryNotFoundError

_CHUNK_SIZE = 256


def is_dir_empty(path: str | Path) -> bool:
    """True if *path* has no entries. Unreadable directories count as empty."""
    try:
        with os.scandir(path) as entries:
            return next(entries, None) is None
    except OSError:
        return True


class _SizeAccumulator:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total = 0

    def add(self, paths: list[str]) -> None:
        subtotal = 0
        for path in paths:
            try:
                subtotal += os.lstat(path).st_size
            except OSError:
                continue
        with self._lock:
            self.total += subtotal


def calculate_dir_size(root: str | Path, workers: int | None = None) -> int:
    """Total size in bytes of every non-directory entry under *root*.

    File paths are collected on the calling thread and summed in chunks on a
    bounded pool (``2 * cpu_count`` workers unless *workers* is given).
    Entries that vanish or cannot be stat'ed are ignored.

    Raises:
        ScanDirectoryNotFoundError: *root* is not a directory.
    """
    if not Path(root).is_dir():
        raise ScanDirectoryNotFoundError(str(root))

    max_workers = workers or (os.cpu_count() or 1) * 2
    acc = _SizeAccumulator()

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dir-size") as pool:
        futures = []
        chunk: list[str] = []
        for dirpath, _dirnames, filenames in os.walk(root):
            for name in filenames:
                chunk.append(os.path.join(dirpath, name))
                if len(chunk) >= _CHUNK_SIZE:
                    futures.append(pool.submit(acc.add, chunk))
                    chunk = []
        if chunk:
            futures.append(pool.submit(acc.add, chunk))
        for future in futures:
            future.result()

    return acc.total
