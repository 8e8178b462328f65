"""Scan configuration."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, field_validator, model_validator


def _default_thread_num() -> int:
    return min(30, (os.cpu_count() or 1) * 2)


class ScanConfig(BaseModel):
    """Settings consumed by the fingerprint engine and the dependency resolver.

    ``to_path`` defaults to the parent of ``task_dir`` so the fingerprint
    artifact lands next to (not inside) the scanned tree.
    """

    task_dir: Path | None = None
    to_path: Path | None = None
    thread_num: int = _default_thread_num()
    build_depend: bool = True
    invoke_tools: bool = False

    # Explicit executable paths, overriding PATH lookup
    maven_path: str | None = None
    gradle_path: str | None = None
    pip_path: str | None = None
    pip_requirements_path: str | None = None
    npm_path: str | None = None
    go_path: str | None = None
    pipenv_path: str | None = None

    @field_validator("thread_num")
    @classmethod
    def _check_thread_num(cls, v: int) -> int:
        if not 1 <= v <= 60:
            raise ValueError("thread number must be between 1 and 60")
        return v

    @field_validator(
        "maven_path",
        "gradle_path",
        "pip_path",
        "pip_requirements_path",
        "npm_path",
        "go_path",
        "pipenv_path",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def _default_to_path(self) -> ScanConfig:
        if self.to_path is None:
            if self.task_dir is not None:
                resolved = Path(self.task_dir).resolve().parent
            else:
                resolved = Path.cwd()
            self.to_path = resolved
        elif not self.to_path.is_absolute():
            self.to_path = self.to_path.resolve()
        return self
