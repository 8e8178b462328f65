"""Scanner for Node.js projects (package.json)."""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from cleansource.core.config import ScanConfig
from cleansource.engines.dependency_scanner.models import Dependency, DependencyRoot
from cleansource.engines.dependency_scanner.registry import register_scanner
from cleansource.engines.dependency_scanner.scanners._common import (
    UNKNOWN,
    read_manifest,
    require_manifest,
)
from cleansource.engines.dependency_scanner.tools import locate_executable
from cleansource.exceptions import ManifestParseError

TOOL = "npm"

# package.json section -> scope
SECTION_SCOPES: list[tuple[str, str]] = [
    ("dependencies", "runtime"),
    ("devDependencies", "development"),
    ("peerDependencies", "peer"),
]


def parse_package_json(content: str, log=None) -> tuple[str, str, list[Dependency]]:
    """Return ``(name, version, dependencies)`` from package.json content.

    Raises:
        ManifestParseError: the JSON is malformed or not an object.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ManifestParseError(f"failed to parse package.json: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestParseError("package.json must contain a JSON object")

    name = data.get("name") or UNKNOWN
    version = data.get("version") or UNKNOWN

    deps: list[Dependency] = []
    for section, scope in SECTION_SCOPES:
        entries = data.get(section)
        if entries is None:
            continue
        if not isinstance(entries, dict):
            if log is not None:
                log.warning("npm.section_ignored", section=section, reason="not an object")
            continue
        for dep_name, dep_version in entries.items():
            deps.append(
                Dependency.create(
                    name=dep_name,
                    version=str(dep_version),
                    type=TOOL,
                    scope=scope,
                )
            )
    return str(name), str(version), deps


class NpmScanner:
    def __init__(
        self,
        root_dir: Path,
        config: ScanConfig,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        self._root = root_dir
        self._config = config
        self._log = log.bind(tool=TOOL)

    @property
    def package_json_path(self) -> Path:
        return self._root / "package.json"

    def find_executable(self) -> str:
        path = locate_executable(TOOL, ["npm", "npm.cmd"], configured=self._config.npm_path)
        self._log.debug("npm.executable_found", path=path)
        return path

    def find_manifest(self) -> Path:
        return require_manifest(self.package_json_path)

    def execute(self) -> list[DependencyRoot]:
        self._log.info("npm.scan_started")
        name, version, deps = parse_package_json(
            read_manifest(self.package_json_path), self._log
        )
        return [
            DependencyRoot(
                project_name=name,
                project_version=version,
                build_tool=TOOL,
                dependencies=deps,
            )
        ]


register_scanner(TOOL, ["package.json"], NpmScanner)
