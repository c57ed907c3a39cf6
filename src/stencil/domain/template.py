"""Domain model for registry template packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

LATEST = "latest"


class TemplateKind(str, Enum):
    PAGE = "page"
    SECTION = "section"
    PROJECT = "project"


class InstallKind(str, Enum):
    NORMAL = "normal"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PackageSpec:
    name: str
    version: str = LATEST

    @property
    def is_latest(self) -> bool:
        return self.version == LATEST

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class TemplateDescriptor:
    template_id: str
    display_name: str
    package: PackageSpec
    kind: TemplateKind
    install_kind: InstallKind = InstallKind.NORMAL
    template_root: str = ""
    ignore: tuple[str, ...] = ()
    description: str = ""
    tags: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TemplateDescriptor":
        return cls(
            template_id=payload["id"],
            display_name=payload.get("name") or payload["id"],
            package=PackageSpec(payload["package"], str(payload.get("version", LATEST))),
            kind=TemplateKind(payload.get("kind", TemplateKind.PAGE.value)),
            install_kind=InstallKind(payload.get("install", InstallKind.NORMAL.value)),
            template_root=payload.get("template_root", ""),
            ignore=tuple(payload.get("ignore", ())),
            description=payload.get("description", ""),
            tags=tuple(payload.get("tags", ())),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.template_id,
            "name": self.display_name,
            "package": self.package.name,
            "version": self.package.version,
            "kind": self.kind.value,
            "install": self.install_kind.value,
            "template_root": self.template_root,
            "ignore": list(self.ignore),
            "description": self.description,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class ProjectInfo:
    """Answers collected for ``stencil init``; doubles as the render context."""

    name: str
    version: str
    description: str = ""

    @property
    def class_name(self) -> str:
        return "".join(part.capitalize() for part in _split_words(self.name))

    def variables(self) -> dict[str, str]:
        return {
            "name": self.name,
            "className": self.class_name,
            "version": self.version,
            "description": self.description,
        }

    def to_dict(self) -> dict[str, str]:
        return self.variables()


def _split_words(value: str) -> list[str]:
    return [part for part in value.replace("_", "-").split("-") if part]
