"""Data models for the fingerprint engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FileRecord:
    """Digest of one scan-eligible file."""

    path: str  # relative to the scan root, forward slashes
    digest: str  # lowercase hex
    size: int

    def to_line(self) -> str:
        return f"file={self.path},hash={self.digest},size={self.size}"

    @classmethod
    def from_line(cls, line: str) -> FileRecord:
        """Parse a ``file=...,hash=...,size=...`` line.

        The path may itself contain commas, so the hash and size fields are
        split off from the right.
        """
        head, _, size = line.strip().rpartition(",size=")
        path, _, digest = head.rpartition(",hash=")
        if not path.startswith("file=") or not digest or not size:
            raise ValueError(f"malformed fingerprint line: {line!r}")
        return cls(path=path[len("file="):], digest=digest, size=int(size))
