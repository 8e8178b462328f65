"""Scanner for pip projects (requirements.txt, setup.py, pyproject.toml).

Declared requirements come from ``requirements.txt`` and the PEP 621
``[project].dependencies`` table. When tool invocation is enabled the
installed packages reported by ``pip list --format=freeze`` are merged in;
a declared version always wins over the installed one for the same package.
"""

from __future__ import annotations

import re
import sys
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

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
from cleansource.engines.dependency_scanner.tools import locate_executable, run_tool
from cleansource.exceptions import ManifestNotFoundError, ScanError

TOOL = "pip"
DEFAULT_SCOPE = "runtime"

MARKERS = ["requirements.txt", "setup.py", "pyproject.toml"]

# Leftmost match wins; longer operators are listed first for the same position
_OPERATOR_RE = re.compile(r"===|==|>=|<=|~=|!=|>|<")
# Per-requirement options such as --hash, as emitted by pip-compile
_INLINE_OPTION_RE = re.compile(r"\s--?[A-Za-z]")

_NAME_RE = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9._-]*[A-Za-z0-9])?$")

_SETUP_NAME_RE = re.compile(r"\bname\s*=\s*(.+)")
_SETUP_VERSION_RE = re.compile(r"\bversion\s*=\s*(.+)")


def canonical_name(name: str) -> str:
    """PEP 503 normalisation, used as the merge key."""
    return re.sub(r"[-_.]+", "-", name).lower()


def parse_requirement(line: str, dep_type: str = TOOL) -> Dependency | None:
    """Parse one requirement specifier such as ``requests[socks]>=2.0``.

    Environment markers, extras, inline options and a trailing line
    continuation are dropped. A bare name gets version
    ``unknown``. Returns None when no valid package name can be found.
    """
    spec = line.split(";", 1)[0].strip().rstrip("\\").strip()
    m = _INLINE_OPTION_RE.search(spec)
    if m:
        spec = spec[: m.start()].strip()
    if not spec:
        return None

    name, version = spec, UNKNOWN
    m = _OPERATOR_RE.search(spec)
    if m:
        name = spec[: m.start()]
        version = spec[m.end():].strip() or UNKNOWN

    name = name.split("[", 1)[0].strip()
    if not _NAME_RE.match(name):
        return None
    return Dependency.create(name=name, version=version, type=dep_type, scope=DEFAULT_SCOPE)


def parse_requirements(content: str, log=None, dep_type: str = TOOL) -> list[Dependency]:
    """Parse requirements.txt content, skipping comments, options and bad lines."""
    deps: list[Dependency] = []
    for lineno, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.split(" #", 1)[0].strip()
        if not line or line.startswith("#"):
            continue
        # -r, -c, -e, --index-url, ...
        if line.startswith("-"):
            continue
        dep = parse_requirement(line, dep_type)
        if dep is None:
            if log is not None:
                log.debug("pip.requirement_skipped", line=lineno, content=raw_line)
            continue
        deps.append(dep)
    return deps


def parse_freeze(output: str, dep_type: str = TOOL) -> list[Dependency]:
    """Parse ``name==version`` lines as printed by ``pip freeze``."""
    deps: list[Dependency] = []
    for raw_line in output.splitlines():
        parts = raw_line.strip().split("==")
        if len(parts) != 2:
            continue
        name, version = parts[0].strip(), parts[1].strip()
        if not name or not version:
            continue
        deps.append(
            Dependency.create(name=name, version=version, type=dep_type, scope=DEFAULT_SCOPE)
        )
    return deps


def merge_dependencies(
    declared: list[Dependency], installed: list[Dependency]
) -> list[Dependency]:
    """Merge declared and installed packages.

    A declared entry overrides an installed entry for the same package;
    installed-only packages are kept as they are. Declared entries come
    first, in declaration order.
    """
    merged: dict[str, Dependency] = {}
    for dep in declared:
        merged.setdefault(canonical_name(dep.name), dep)
    for dep in installed:
        merged.setdefault(canonical_name(dep.name), dep)
    return list(merged.values())


def parse_setup_py(content: str) -> tuple[str, str]:
    """Best-effort ``name=``/``version=`` literal extraction from setup.py."""
    name = version = ""
    for raw_line in content.splitlines():
        line = raw_line.strip()
        m = _SETUP_NAME_RE.search(line)
        if m:
            name = extract_quoted(m.group(1)) or name
        m = _SETUP_VERSION_RE.search(line)
        if m:
            version = extract_quoted(m.group(1)) or version
    return name, version


class PipScanner:
    """requirements.txt / pyproject.toml parsing plus optional ``pip list``."""

    def __init__(
        self,
        root_dir: Path,
        config: ScanConfig,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        self._root = root_dir
        self._config = config
        self._log = log.bind(tool=TOOL)
        self._pip_cmd: list[str] | None = None

    @property
    def requirements_path(self) -> Path:
        if self._config.pip_requirements_path:
            return Path(self._config.pip_requirements_path)
        return self._root / "requirements.txt"

    def find_executable(self) -> str:
        try:
            pip = locate_executable(TOOL, ["pip3", "pip"], configured=self._config.pip_path)
            self._pip_cmd = [pip]
        except ScanError:
            # Fall back to ``python -m pip``
            python = locate_executable("python", ["python3", "python", "py"])
            self._pip_cmd = [python, "-m", "pip"]
        self._log.debug("pip.executable_found", cmd=self._pip_cmd)
        return self._pip_cmd[0]

    def find_manifest(self) -> Path:
        candidates = [
            self.requirements_path,
            self._root / "setup.py",
            self._root / "pyproject.toml",
        ]
        for candidate in candidates:
            if candidate.is_file():
                return require_manifest(candidate)
        raise ManifestNotFoundError(
            "no pip requirement files found (requirements.txt, setup.py, pyproject.toml)"
        )

    def execute(self) -> list[DependencyRoot]:
        self._log.info("pip.scan_started")
        project_name, project_version = UNKNOWN, UNKNOWN

        declared: list[Dependency] = []
        if self.requirements_path.is_file():
            declared.extend(parse_requirements(read_manifest(self.requirements_path), self._log))

        pyproject = self._read_pyproject()
        if pyproject:
            project = pyproject.get("project", {})
            if isinstance(project, dict):
                project_name = str(project.get("name") or project_name)
                project_version = str(project.get("version") or project_version)
                for spec in project.get("dependencies", []) or []:
                    dep = parse_requirement(str(spec)) if isinstance(spec, str) else None
                    if dep is not None:
                        declared.append(dep)
            declared = merge_dependencies(declared, [])

        setup_py = self._root / "setup.py"
        if setup_py.is_file():
            name, version = parse_setup_py(read_manifest(setup_py))
            project_name = name or project_name
            project_version = version or project_version

        dependencies = declared
        installed = self._installed_packages()
        if installed is not None:
            dependencies = merge_dependencies(declared, installed)

        return [
            DependencyRoot(
                project_name=project_name,
                project_version=project_version,
                build_tool=TOOL,
                dependencies=dependencies,
            )
        ]

    def _read_pyproject(self) -> dict | None:
        path = self._root / "pyproject.toml"
        if not path.is_file():
            return None
        try:
            return tomllib.loads(read_manifest(path))
        except tomllib.TOMLDecodeError as exc:
            self._log.warning("pip.pyproject_invalid", error=str(exc))
            return None

    def _installed_packages(self) -> list[Dependency] | None:
        if not (self._config.invoke_tools and self._pip_cmd):
            return None
        try:
            output = run_tool([*self._pip_cmd, "list", "--format=freeze"], self._root)
        except ScanError as exc:
            self._log.warning("pip.list_failed", error=str(exc))
            return None
        return parse_freeze(output)


register_scanner(TOOL, MARKERS, PipScanner)
