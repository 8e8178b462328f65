"""Custom exceptions for the CleanSource scanner."""

from __future__ import annotations


class ScanError(Exception):
    """Base exception for all scanner errors."""


class ScanDirectoryNotFoundError(ScanError):
    """Raised when the scan root does not exist or is not a directory."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"scan directory not found: {path}")


class FingerprintWriteError(ScanError):
    """Raised when the fingerprint artifact cannot be created or written."""


class ExecutableNotFoundError(ScanError):
    """Raised when an optional build-tool executable cannot be located."""


class ManifestNotFoundError(ScanError):
    """Raised when an ecosystem's required manifest is missing or unreadable."""


class ManifestParseError(ScanError):
    """Raised when a structured manifest (XML, JSON) cannot be parsed."""


class ToolExecutionError(ScanError):
    """Raised when an external build-tool command fails."""

    def __init__(self, cmd: list[str], returncode: int | None, stderr: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"{' '.join(cmd)} failed (exit {returncode}){detail}")
