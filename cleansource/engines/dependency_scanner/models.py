"""Data models for the dependency scanner engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DependencyID:
    """Identifies a dependency independent of where it was declared."""

    group: str
    name: str
    version: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {
            "group": self.group,
            "name": self.name,
            "version": self.version,
            "type": self.type,
        }


@dataclass
class Dependency:
    """A single dependency detected from a manifest or a build tool."""

    id: DependencyID
    name: str
    version: str
    type: str
    scope: str = ""
    children: list[Dependency] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        name: str,
        version: str,
        type: str,
        scope: str,
        group: str = "",
    ) -> Dependency:
        """Build a dependency whose ``id`` mirrors the flat fields."""
        return cls(
            id=DependencyID(group=group, name=name, version=version, type=type),
            name=name,
            version=version,
            type=type,
            scope=scope,
        )

    @property
    def group(self) -> str:
        return self.id.group

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id.to_dict(),
            "name": self.name,
            "version": self.version,
            "type": self.type,
        }
        if self.id.group:
            data["groupId"] = self.id.group
        if self.scope:
            data["scope"] = self.scope
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@dataclass
class DependencyRoot:
    """Project identity plus the dependencies of one detected ecosystem."""

    project_name: str
    project_version: str
    build_tool: str
    dependencies: list[Dependency] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectName": self.project_name,
            "projectVersion": self.project_version,
            "buildTool": self.build_tool,
            "dependencies": [d.to_dict() for d in self.dependencies],
        }
