"""Dependency scanner engine: detect build tools and extract declared dependencies."""

from cleansource.engines.dependency_scanner.models import (
    Dependency,
    DependencyID,
    DependencyRoot,
)
from cleansource.engines.dependency_scanner.registry import (
    Scanner,
    ScannerDescriptor,
    detect_tool_from_file,
    marker_table,
)
from cleansource.engines.dependency_scanner.resolver import BuildToolResolver

__all__ = [
    "BuildToolResolver",
    "Dependency",
    "DependencyID",
    "DependencyRoot",
    "Scanner",
    "ScannerDescriptor",
    "detect_tool_from_file",
    "marker_table",
]
