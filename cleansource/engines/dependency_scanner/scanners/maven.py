"""Scanner for Maven projects (pom.xml, optional ``mvn dependency:tree``)."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
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
from cleansource.engines.dependency_scanner.tools import locate_executable, run_tool
from cleansource.exceptions import ManifestParseError, ScanError

TOOL = "maven"
DEFAULT_SCOPE = "compile"
DEFAULT_TYPE = "jar"

_KNOWN_SCOPES = ("compile", "provided", "runtime", "test", "system", "import")

_PROP_RE = re.compile(r"\$\{([^}]+)\}")


@dataclass
class PomDependency:
    group_id: str
    artifact_id: str
    version: str
    scope: str
    type: str


@dataclass
class ParsedPom:
    group_id: str
    artifact_id: str
    version: str
    dependencies: list[PomDependency] = field(default_factory=list)


def _resolve_props(value: str, props: dict[str, str]) -> str:
    """Replace ${property} placeholders with values from <properties>."""

    def _replace(m: re.Match) -> str:
        return props.get(m.group(1), m.group(0))  # keep original if not found

    return _PROP_RE.sub(_replace, value)


def _text(element: ET.Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def parse_pom(content: str) -> ParsedPom:
    """Parse pom.xml content into identity plus direct dependencies.

    Only ``project/dependencies/dependency`` is read; ``dependencyManagement``
    and plugin dependencies are not project dependencies.

    Raises:
        ManifestParseError: the XML is malformed or the root is not <project>.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ManifestParseError(f"failed to parse pom.xml: {exc}") from exc

    ns = root.tag[: root.tag.index("}") + 1] if root.tag.startswith("{") else ""
    if root.tag[len(ns):] != "project":
        raise ManifestParseError(f"pom.xml root element is <{root.tag}>, expected <project>")

    parent = root.find(f"{ns}parent")
    group_id = _text(root.find(f"{ns}groupId")) or _text(
        parent.find(f"{ns}groupId") if parent is not None else None
    )
    version = _text(root.find(f"{ns}version")) or _text(
        parent.find(f"{ns}version") if parent is not None else None
    )
    artifact_id = _text(root.find(f"{ns}artifactId"))

    props: dict[str, str] = {}
    props_el = root.find(f"{ns}properties")
    if props_el is not None:
        for child in props_el:
            tag = child.tag.split("}")[-1]
            if child.text:
                props[tag] = child.text.strip()
    props.setdefault("project.groupId", group_id)
    props.setdefault("project.artifactId", artifact_id)
    props.setdefault("project.version", version)

    pom = ParsedPom(group_id=group_id, artifact_id=artifact_id, version=version)

    deps_el = root.find(f"{ns}dependencies")
    if deps_el is None:
        return pom
    for dep_el in deps_el.findall(f"{ns}dependency"):
        pom.dependencies.append(
            PomDependency(
                group_id=_resolve_props(_text(dep_el.find(f"{ns}groupId")), props),
                artifact_id=_resolve_props(_text(dep_el.find(f"{ns}artifactId")), props),
                version=_resolve_props(_text(dep_el.find(f"{ns}version")), props),
                scope=_text(dep_el.find(f"{ns}scope")),
                type=_text(dep_el.find(f"{ns}type")),
            )
        )
    return pom


def parse_tree_line(line: str) -> tuple[int, Dependency] | None:
    """Parse one ``mvn dependency:tree`` line into ``(depth, dependency)``.

    Accepts ``group:artifact:type:version:scope`` (optionally with a
    classifier) as well as the shorter four- and three-part forms. Returns
    None for anything that is not a tree entry.
    """
    body = line.rstrip()
    if body.startswith("[INFO]"):
        body = body[len("[INFO]"):]
        if body.startswith(" "):
            body = body[1:]

    positions = [p for p in (body.find("+- "), body.find("\\- ")) if p != -1]
    if not positions:
        return None
    marker = min(positions)
    depth = marker // 3

    coords = body[marker + 3:].strip().split(" ", 1)[0]
    parts = coords.split(":")
    if len(parts) < 3:
        return None

    group, artifact = parts[0], parts[1]
    if len(parts) >= 6:
        dep_type, version, scope = parts[2], parts[4], parts[5]
    elif len(parts) == 5:
        dep_type, version, scope = parts[2], parts[3], parts[4]
    elif len(parts) == 4:
        if any(s in parts[3] for s in _KNOWN_SCOPES):
            dep_type, version, scope = DEFAULT_TYPE, parts[2], parts[3]
        else:
            dep_type, version, scope = parts[2], parts[3], DEFAULT_SCOPE
    else:
        dep_type, version, scope = DEFAULT_TYPE, parts[2], DEFAULT_SCOPE

    return depth, Dependency.create(
        name=artifact, version=version, type=dep_type, scope=scope, group=group
    )


def parse_dependency_tree(output: str) -> list[Dependency]:
    """Parse ``mvn dependency:tree -DoutputType=text`` output.

    Direct dependencies are returned in order; transitive ones are attached
    as ``children`` of the entry one level above them.
    """
    top: list[Dependency] = []
    stack: list[Dependency] = []
    for line in output.splitlines():
        parsed = parse_tree_line(line)
        if parsed is None:
            continue
        depth, dep = parsed
        del stack[depth:]
        if stack:
            stack[-1].children.append(dep)
        else:
            top.append(dep)
        stack.append(dep)
    return top


class MavenScanner:
    """pom.xml parsing with an optional ``dependency:tree`` enrichment."""

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
    def pom_path(self) -> Path:
        return self._root / "pom.xml"

    def find_executable(self) -> str:
        self._executable = locate_executable(
            TOOL,
            ["mvn"],
            configured=self._config.maven_path,
            wrappers=[self._root / "mvnw", self._root / "mvnw.cmd"],
        )
        self._log.debug("maven.executable_found", path=self._executable)
        return self._executable

    def find_manifest(self) -> Path:
        return require_manifest(self.pom_path)

    def execute(self) -> list[DependencyRoot]:
        self._log.info("maven.scan_started")
        pom = parse_pom(read_manifest(self.pom_path))

        dependencies = [
            Dependency.create(
                name=d.artifact_id,
                version=d.version,
                type=d.type or DEFAULT_TYPE,
                scope=d.scope or DEFAULT_SCOPE,
                group=d.group_id,
            )
            for d in pom.dependencies
        ]

        tree = self._dependency_tree()
        if tree is not None:
            dependencies = tree

        return [
            DependencyRoot(
                project_name=pom.artifact_id or UNKNOWN,
                project_version=pom.version or UNKNOWN,
                build_tool=TOOL,
                dependencies=dependencies,
            )
        ]

    def _dependency_tree(self) -> list[Dependency] | None:
        if not (self._config.invoke_tools and self._executable):
            return None
        try:
            output = run_tool(
                [self._executable, "dependency:tree", "-DoutputType=text"], self._root
            )
        except ScanError as exc:
            self._log.warning("maven.dependency_tree_failed", error=str(exc))
            return None
        tree = parse_dependency_tree(output)
        if not tree:
            return None
        return tree


register_scanner(TOOL, ["pom.xml"], MavenScanner)
