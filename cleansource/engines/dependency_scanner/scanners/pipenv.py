"""Scanner for Pipenv projects (Pipfile, optional ``pipenv run pip freeze``).

The Pipfile is read line by line rather than as TOML so that a single
broken entry only loses that entry.
"""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from cleansource.core.config import ScanConfig
from cleansource.engines.dependency_scanner.models import Dependency, DependencyRoot
from cleansource.engines.dependency_scanner.registry import register_scanner
from cleansource.engines.dependency_scanner.scanners._common import (
    UNKNOWN,
    extract_quoted,
    read_manifest,
    require_manifest,
)
from cleansource.engines.dependency_scanner.scanners.pip import (
    merge_dependencies,
    parse_freeze,
)
from cleansource.engines.dependency_scanner.tools import locate_executable, run_tool
from cleansource.exceptions import ScanError

TOOL = "pipenv"

# Pipfile section -> scope
SECTION_SCOPES = {
    "packages": "runtime",
    "dev-packages": "development",
}

_SECTION_RE = re.compile(r"^\[\[?\s*([^\]]+?)\s*\]\]?$")
_KEY_VALUE_RE = re.compile(r"""^["']?([A-Za-z0-9][A-Za-z0-9._-]*)["']?\s*=\s*(.+)$""")
_INLINE_VERSION_RE = re.compile(r"""\bversion\s*=\s*["']([^"']*)["']""")


def _entry_version(value: str) -> str | None:
    """Version of a package entry: ``"*"``, ``">=1.0"`` or ``{version = "..."}``.

    Inline tables without a version key (git/path entries) yield ``*``.
    Returns None when the value is not recognisable.
    """
    value = value.strip()
    if value.startswith("{"):
        m = _INLINE_VERSION_RE.search(value)
        return m.group(1) if m else "*"
    quoted = extract_quoted(value)
    return quoted or None


def parse_pipfile(content: str, log=None) -> tuple[str, str, list[Dependency]]:
    """Return ``(name, version, dependencies)`` from Pipfile content.

    Name and version come from top-level ``name``/``version`` keys (or
    any section other than sources, packages and requires) and fall back
    to ``unknown``.
    """
    name = version = ""
    deps: list[Dependency] = []
    section: str | None = None

    for lineno, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        m = _SECTION_RE.match(line)
        if m:
            section = m.group(1)
            continue

        kv = _KEY_VALUE_RE.match(line)
        if not kv:
            if log is not None:
                log.debug("pipenv.line_skipped", line=lineno, content=raw_line)
            continue
        key, value = kv.group(1), kv.group(2)

        if section in SECTION_SCOPES:
            dep_version = _entry_version(value)
            if dep_version is None:
                if log is not None:
                    log.debug("pipenv.line_skipped", line=lineno, content=raw_line)
                continue
            deps.append(
                Dependency.create(
                    name=key,
                    version=dep_version,
                    type=TOOL,
                    scope=SECTION_SCOPES[section],
                )
            )
        elif section not in ("source", "requires", "pipenv", "scripts"):
            if key == "name":
                name = extract_quoted(value) or name
            elif key == "version":
                version = extract_quoted(value) or version

    return name or UNKNOWN, version or UNKNOWN, deps


class PipenvScanner:
    def __init__(
        self,
        root_dir: Path,
        config: ScanConfig,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        self._root = root_dir
        self._config = config
        self._log = log.bind(tool=TOOL)
        self._executable: str | None = None

    @property
    def pipfile_path(self) -> Path:
        return self._root / "Pipfile"

    def find_executable(self) -> str:
        self._executable = locate_executable(
            TOOL, ["pipenv"], configured=self._config.pipenv_path
        )
        self._log.debug("pipenv.executable_found", path=self._executable)
        return self._executable

    def find_manifest(self) -> Path:
        return require_manifest(self.pipfile_path)

    def execute(self) -> list[DependencyRoot]:
        self._log.info("pipenv.scan_started")
        name, version, deps = parse_pipfile(read_manifest(self.pipfile_path), self._log)

        installed = self._frozen_packages()
        if installed is not None:
            deps = merge_dependencies(deps, installed)

        return [
            DependencyRoot(
                project_name=name,
                project_version=version,
                build_tool=TOOL,
                dependencies=deps,
            )
        ]

    def _frozen_packages(self) -> list[Dependency] | None:
        if not (self._config.invoke_tools and self._executable):
            return None
        try:
            output = run_tool([self._executable, "run", "pip", "freeze"], self._root)
        except ScanError as exc:
            self._log.warning("pipenv.freeze_failed", error=str(exc))
            return None
        return parse_freeze(output, dep_type=TOOL)


register_scanner(TOOL, ["Pipfile"], PipenvScanner)
