"""Scanner for Go modules (go.mod, optional ``go list -m -json all``)."""

from __future__ import annotations

import json
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
from cleansource.engines.dependency_scanner.tools import locate_executable, run_tool
from cleansource.exceptions import ScanError

TOOL = "go"

_MODULE_RE = re.compile(r"^module\s+(\S+)")
_GO_RE = re.compile(r"^go\s+(\S+)")

# Single require: require github.com/foo/bar v1.2.3
_SINGLE_RE = re.compile(r"^require\s+(\S+)\s+(\S+)")

# Inside require block: github.com/foo/bar v1.2.3
_BLOCK_RE = re.compile(r"^(\S+)\s+(v\S+)")


def _scope(line: str) -> str:
    return "indirect" if "// indirect" in line else "runtime"


def parse_go_mod(content: str) -> tuple[str, str, list[Dependency]]:
    """Return ``(module, go_version, requirements)`` from go.mod content.

    Module and go version fall back to ``unknown``. Versions keep their
    leading ``v``.
    """
    module = go_version = UNKNOWN
    deps: list[Dependency] = []
    in_require_block = False

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("//"):
            continue

        if in_require_block:
            if line == ")":
                in_require_block = False
                continue
            m = _BLOCK_RE.match(line)
            if m:
                deps.append(
                    Dependency.create(
                        name=m.group(1), version=m.group(2), type=TOOL, scope=_scope(line)
                    )
                )
            continue

        if line.startswith("require ("):
            in_require_block = True
            continue

        m = _MODULE_RE.match(line)
        if m:
            module = m.group(1).strip('"')
            continue
        m = _GO_RE.match(line)
        if m:
            go_version = m.group(1)
            continue
        m = _SINGLE_RE.match(line)
        if m:
            deps.append(
                Dependency.create(
                    name=m.group(1), version=m.group(2), type=TOOL, scope=_scope(line)
                )
            )

    return module, go_version, deps


def parse_go_list(output: str) -> list[Dependency]:
    """Parse the concatenated JSON objects printed by ``go list -m -json all``.

    The main module is skipped; ``Indirect`` modules get scope ``indirect``.
    """
    decoder = json.JSONDecoder()
    deps: list[Dependency] = []
    idx = 0
    while True:
        while idx < len(output) and output[idx].isspace():
            idx += 1
        if idx >= len(output):
            break
        obj, idx = decoder.raw_decode(output, idx)
        if not isinstance(obj, dict) or obj.get("Main"):
            continue
        path = obj.get("Path")
        if not path:
            continue
        deps.append(
            Dependency.create(
                name=path,
                version=obj.get("Version") or UNKNOWN,
                type=TOOL,
                scope="indirect" if obj.get("Indirect") else "runtime",
            )
        )
    return deps


class GoModScanner:
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
    def go_mod_path(self) -> Path:
        return self._root / "go.mod"

    def find_executable(self) -> str:
        self._executable = locate_executable(
            TOOL, ["go", "go.exe"], configured=self._config.go_path
        )
        self._log.debug("go.executable_found", path=self._executable)
        return self._executable

    def find_manifest(self) -> Path:
        return require_manifest(self.go_mod_path)

    def execute(self) -> list[DependencyRoot]:
        self._log.info("go.scan_started")
        module, go_version, deps = parse_go_mod(read_manifest(self.go_mod_path))

        listed = self._list_modules()
        if listed:
            deps = listed

        return [
            DependencyRoot(
                project_name=module,
                project_version=go_version,
                build_tool=TOOL,
                dependencies=deps,
            )
        ]

    def _list_modules(self) -> list[Dependency] | None:
        if not (self._config.invoke_tools and self._executable):
            return None
        try:
            output = run_tool([self._executable, "list", "-m", "-json", "all"], self._root)
            return parse_go_list(output)
        except ScanError as exc:
            self._log.warning("go.list_failed", error=str(exc))
        except json.JSONDecodeError as exc:
            self._log.warning("go.list_unparseable", error=str(exc))
        return None


register_scanner(TOOL, ["go.mod"], GoModScanner)
