"""Helpers shared by the ecosystem scanners."""

from __future__ import annotations

from pathlib import Path

from cleansource.exceptions import ManifestNotFoundError

UNKNOWN = "unknown"


def require_manifest(path: Path) -> Path:
    """Return *path* if it is a readable file, else raise ``ManifestNotFoundError``."""
    if not path.is_file():
        raise ManifestNotFoundError(f"{path.name} not found in {path.parent}")
    try:
        with path.open("rb"):
            pass
    except OSError as exc:
        raise ManifestNotFoundError(f"{path.name} is not readable: {exc}") from exc
    return path


def read_manifest(path: Path) -> str:
    """Read a manifest as text, mapping I/O failures to ``ManifestNotFoundError``."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise ManifestNotFoundError(f"failed to read {path.name}: {exc}") from exc


def extract_quoted(expr: str) -> str:
    """Return the leading single- or double-quoted value in *expr*, or ``""``."""
    expr = expr.strip()
    if len(expr) >= 2 and expr[0] in ("'", '"'):
        end = expr.find(expr[0], 1)
        if end != -1:
            return expr[1:end]
    return ""
