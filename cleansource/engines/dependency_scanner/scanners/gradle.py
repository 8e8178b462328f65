"""Scanner for Gradle build files (build.gradle / build.gradle.kts).

Extracts dependencies declared with standard Gradle configurations like
implementation, api, compileOnly, testImplementation, etc.

Handles both Groovy DSL and Kotlin DSL string notation as well as the
Groovy map notation:
  - implementation 'group:artifact:version'
  - implementation("group:artifact:version")
  - testImplementation group: 'g', name: 'a', version: 'v'
  - api(project(":submodule"))          → skipped (internal)

This is a line-oriented textual scan, not a build-script evaluator:
declarations spread over several lines or built from variables are not
recognised.
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
    read_manifest,
    require_manifest,
)
from cleansource.engines.dependency_scanner.tools import locate_executable
from cleansource.exceptions import ManifestNotFoundError

TOOL = "gradle"

BUILD_FILES = ["build.gradle", "build.gradle.kts"]
SETTINGS_FILES = ["settings.gradle", "settings.gradle.kts"]

# Gradle configuration names (not exhaustive, but covers the common ones)
_CONFIGS = (
    r"(?P<config>implementation|api|compileOnlyApi|compileOnly|runtimeOnly|"
    r"annotationProcessor|kapt|ksp|"
    r"testImplementation|testCompileOnly|testRuntimeOnly|testCompile|testRuntime|"
    r"androidTestImplementation|debugImplementation|releaseImplementation|"
    r"optional|provided|compile|runtime|"
    r"\w+Implementation|\w+Api|\w+CompileOnly|\w+RuntimeOnly)"
)

# configuration("group:artifact:version") or configuration 'group:artifact:version[:classifier]'
_STRING_DEP_RE = re.compile(
    rf"^\s*{_CONFIGS}"
    r"\s*\(?\s*"
    r"""["']"""
    r"(?P<group>[^\s:'\"]+)"
    r":"
    r"(?P<artifact>[^\s:'\"]+)"
    r":"
    r"(?P<version>[^\s:'\"@]+)"
    r"""[^'"]*["']"""
)

# configuration group: 'g', name: 'a', version: 'v'
_MAP_DEP_RE = re.compile(
    rf"^\s*{_CONFIGS}"
    r"\s*\(?\s*"
    r"""group\s*[:=]\s*["'](?P<group>[^"']+)["']\s*,\s*"""
    r"""name\s*[:=]\s*["'](?P<artifact>[^"']+)["']\s*,\s*"""
    r"""version\s*[:=]\s*["'](?P<version>[^"']+)["']"""
)

_ROOT_NAME_RE = re.compile(r"""rootProject\.name\s*=\s*["']([^"']+)["']""")
_VERSION_RE = re.compile(r"""^\s*version\s*=?\s*["']([^"']+)["']""")


def scope_for_configuration(config: str) -> str:
    """Map a Gradle configuration keyword to a dependency scope."""
    lowered = config.lower()
    if lowered.startswith(("test", "androidtest")):
        return "test"
    if lowered in ("compileonly", "compileonlyapi", "provided") or lowered.endswith("compileonly"):
        return "provided"
    return "runtime"


def parse_dependency_line(line: str) -> Dependency | None:
    """Parse one build-script line into a dependency, or None."""
    m = _STRING_DEP_RE.match(line) or _MAP_DEP_RE.match(line)
    if not m:
        return None
    return Dependency.create(
        name=m.group("artifact"),
        version=m.group("version"),
        type=TOOL,
        scope=scope_for_configuration(m.group("config")),
        group=m.group("group"),
    )


def parse_build_gradle(content: str) -> tuple[str, str, list[Dependency]]:
    """Return ``(project_name, project_version, dependencies)``.

    Name and version are empty strings when the script does not set them.
    """
    name = version = ""
    deps: list[Dependency] = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("//", "/*", "*")):
            continue
        m = _ROOT_NAME_RE.search(line)
        if m:
            name = m.group(1)
            continue
        m = _VERSION_RE.match(line)
        if m:
            version = m.group(1)
            continue
        dep = parse_dependency_line(line)
        if dep is not None:
            deps.append(dep)
    return name, version, deps


class GradleScanner:
    def __init__(
        self,
        root_dir: Path,
        config: ScanConfig,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        self._root = root_dir
        self._config = config
        self._log = log.bind(tool=TOOL)

    def find_executable(self) -> str:
        path = locate_executable(
            TOOL,
            ["gradle", "gradle.bat"],
            configured=self._config.gradle_path,
            wrappers=[self._root / "gradlew", self._root / "gradlew.bat"],
        )
        self._log.debug("gradle.executable_found", path=path)
        return path

    def find_manifest(self) -> Path:
        for name in BUILD_FILES:
            candidate = self._root / name
            if candidate.is_file():
                return require_manifest(candidate)
        raise ManifestNotFoundError("build.gradle or build.gradle.kts not found")

    def execute(self) -> list[DependencyRoot]:
        self._log.info("gradle.scan_started")
        build_file = self.find_manifest()
        name, version, deps = parse_build_gradle(read_manifest(build_file))

        if not name:
            name = self._settings_project_name()

        self._log.debug("gradle.parsed", file=build_file.name, dependencies=len(deps))
        return [
            DependencyRoot(
                project_name=name or UNKNOWN,
                project_version=version or UNKNOWN,
                build_tool=TOOL,
                dependencies=deps,
            )
        ]

    def _settings_project_name(self) -> str:
        for settings in SETTINGS_FILES:
            path = self._root / settings
            if not path.is_file():
                continue
            m = _ROOT_NAME_RE.search(read_manifest(path))
            if m:
                return m.group(1)
        return ""


register_scanner(TOOL, BUILD_FILES, GradleScanner)
