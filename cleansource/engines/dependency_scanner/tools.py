"""External build-tool helpers: executable lookup and command execution."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

from cleansource.exceptions import ExecutableNotFoundError, ToolExecutionError


def locate_executable(
    tool: str,
    candidates: list[str],
    configured: str | None = None,
    wrappers: list[Path] | None = None,
) -> str:
    """Find an executable for *tool*.

    Search order: the configured path (if it exists), each of *candidates*
    on ``PATH``, then project-local *wrappers* such as ``mvnw``.

    Raises:
        ExecutableNotFoundError: nothing usable was found.
    """
    if configured:
        if Path(configured).exists():
            return configured
        found = shutil.which(configured)
        if found:
            return found

    for candidate in candidates:
        found = shutil.which(candidate)
        if found:
            return found

    for wrapper in wrappers or []:
        if wrapper.is_file() and os.access(wrapper, os.X_OK):
            return str(wrapper)

    raise ExecutableNotFoundError(f"{tool} executable not found")


def run_tool(cmd: list[str], cwd: Path) -> str:
    """Run *cmd* in *cwd* and return its stdout.

    Raises:
        ToolExecutionError: the command could not be started or exited
            non-zero.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise ToolExecutionError(cmd, None, str(exc)) from exc
    if proc.returncode != 0:
        raise ToolExecutionError(cmd, proc.returncode, proc.stderr or "")
    return proc.stdout
