"""Scanner registry: marker files, the scanner protocol, and detection.

Every ecosystem scanner satisfies :class:`Scanner` and registers one
:class:`ScannerDescriptor` per marker file it recognises. The registry is
keyed by marker filename and keeps registration order, which is also the
order in which scanners run.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from cleansource.engines.dependency_scanner.models import DependencyRoot

if TYPE_CHECKING:
    import structlog

    from cleansource.core.config import ScanConfig


@runtime_checkable
class Scanner(Protocol):
    """Interface that every ecosystem scanner must satisfy."""

    def find_executable(self) -> str:
        """Locate the optional build-tool executable.

        Raises ``ExecutableNotFoundError``; the resolver treats that as soft.
        """
        ...

    def find_manifest(self) -> Path:
        """Locate the required manifest. Raises ``ManifestNotFoundError``."""
        ...

    def execute(self) -> list[DependencyRoot]:
        """Parse the manifest (and optionally run the tool)."""
        ...


ScannerFactory = Callable[[Path, "ScanConfig", "structlog.stdlib.BoundLogger"], Scanner]


@dataclass(frozen=True)
class ScannerDescriptor:
    """Static ``marker filename -> tool`` pair plus the scanner factory."""

    marker: str
    tool: str
    factory: ScannerFactory


SCANNER_REGISTRY: dict[str, ScannerDescriptor] = {}


def register_scanner(tool: str, markers: list[str], factory: ScannerFactory) -> None:
    """Register *factory* for each of *markers* under the *tool* identifier."""
    for marker in markers:
        SCANNER_REGISTRY[marker] = ScannerDescriptor(marker=marker, tool=tool, factory=factory)


def marker_table() -> dict[str, str]:
    """Return the ``marker filename -> tool`` mapping."""
    return {marker: desc.tool for marker, desc in SCANNER_REGISTRY.items()}


def detect_tool_from_file(file_path: str | Path) -> str | None:
    """Map a manifest path to its tool identifier by base name."""
    desc = SCANNER_REGISTRY.get(Path(file_path).name)
    return desc.tool if desc else None


def discover_scanners(root_dir: Path) -> list[ScannerDescriptor]:
    """Match marker files directly under *root_dir* to registered scanners.

    Returns one descriptor per tool, in registration order; the first
    marker found for a tool wins.
    """
    matches: list[ScannerDescriptor] = []
    seen_tools: set[str] = set()
    for marker, desc in SCANNER_REGISTRY.items():
        if desc.tool in seen_tools:
            continue
        if (root_dir / marker).is_file():
            matches.append(desc)
            seen_tools.add(desc.tool)
    return matches
