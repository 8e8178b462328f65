"""Skip predicate: decides which filesystem entries are fingerprinted."""

from __future__ import annotations

from pathlib import PurePath

MAX_FILE_SIZE = 1024 * 1024

# Dotfiles that are still meaningful when classifying by name only
ALLOWED_DOTFILES = frozenset({".gitignore", ".dockerignore", ".editorconfig"})

SKIP_DIRS = frozenset(
    {
        "node_modules",
        "vendor",
        "target",
        "build",
        ".git",
        ".svn",
        ".hg",
        "__pycache__",
        ".tox",
        "dist",
        ".gradle",
    }
)

BINARY_EXTENSIONS = frozenset(
    {
        # executables and libraries
        ".exe", ".dll", ".so", ".dylib", ".bin", ".class", ".o", ".a", ".lib",
        # archives
        ".jar", ".war", ".ear", ".zip", ".tar", ".gz", ".bz2", ".7z", ".rar",
        # media
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico",
        ".mp3", ".mp4", ".avi", ".mov", ".wav",
        # documents
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    }
)


def _segments(path: str | PurePath) -> tuple[str, ...]:
    # Accept both separators regardless of host OS
    return tuple(s for s in str(path).replace("\\", "/").split("/") if s not in ("", "."))


def should_skip(
    path: str | PurePath,
    size: int | None = None,
    is_dir: bool = False,
) -> bool:
    """Return True if *path* must not be fingerprinted.

    *path* should be relative to the scan root so that directories above the
    root never influence the result. *size* is the file size in bytes; pass
    ``None`` to classify by name only, in which case the allow-listed
    dotfiles are kept.
    """
    parts = _segments(path)
    if not parts:
        return False
    name = parts[-1]

    if name.startswith("."):
        if is_dir or size is not None or name not in ALLOWED_DOTFILES:
            return True

    if any(part in SKIP_DIRS for part in parts):
        return True

    if is_dir:
        return False

    if PurePath(name).suffix.lower() in BINARY_EXTENSIONS:
        return True

    return size is not None and size > MAX_FILE_SIZE


def is_included(path: str | PurePath, size: int | None = None) -> bool:
    """Inverse of :func:`should_skip` for regular files."""
    return not should_skip(path, size=size)
