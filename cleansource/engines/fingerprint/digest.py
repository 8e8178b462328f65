"""Per-file content digest."""

from __future__ import annotations

import hashlib
from pathlib import Path


def digest_file(path: str | Path) -> tuple[str, int] | None:
    """Return ``(md5_hex, size)`` for *path*, or None for an empty file.

    The file is read fully; callers are expected to have filtered out
    anything above the size ceiling. ``OSError`` propagates.
    """
    content = Path(path).read_bytes()
    if not content:
        return None
    return hashlib.md5(content, usedforsecurity=False).hexdigest(), len(content)
