"""Inspect and clear the local template cache."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from stencil.app.versions import sort_versions
from stencil.settings import RuntimeSettings

logger = logging.getLogger(__name__)

# _<sanitized name>@<version>@<name>; scoped names nest one directory deeper
_ENTRY_PATTERN = re.compile(r"^_(?P<sanitized>@?[^@]+)@(?P<version>[^@]+)@(?P<name>@?[^@]+)$")


@dataclass(frozen=True)
class CachedPackage:
    name: str
    version: str
    path: Path

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version, "path": str(self.path)}


def parse_entry(relative: str) -> tuple[str, str] | None:
    """Split a store entry name into ``(name, version)``; ``None`` if it is not one."""
    match = _ENTRY_PATTERN.match(relative)
    if match is None:
        return None
    name = match.group("name")
    if match.group("sanitized") != name.replace("/", "_"):
        return None
    return name, match.group("version")


def _candidates(store_dir: Path) -> list[tuple[str, Path]]:
    found: list[tuple[str, Path]] = []
    for entry in sorted(store_dir.iterdir()):
        if not entry.is_dir() or not entry.name.startswith("_"):
            continue
        if parse_entry(entry.name) is not None:
            found.append((entry.name, entry))
            continue
        for child in sorted(entry.iterdir()):
            if child.is_dir():
                found.append((f"{entry.name}/{child.name}", child))
    return found


class CacheService:
    def __init__(self, settings: RuntimeSettings) -> None:
        self._settings = settings

    @property
    def store_dir(self) -> Path:
        return self._settings.store_dir

    def list_packages(self) -> list[CachedPackage]:
        if not self.store_dir.is_dir():
            return []
        by_name: dict[str, dict[str, Path]] = {}
        for relative, path in _candidates(self.store_dir):
            parsed = parse_entry(relative)
            if parsed is None:
                continue
            name, version = parsed
            by_name.setdefault(name, {})[version] = path
        packages: list[CachedPackage] = []
        for name in sorted(by_name):
            versions = by_name[name]
            for version in sort_versions(versions):
                packages.append(CachedPackage(name=name, version=version, path=versions[version]))
        return packages

    def clear(self) -> int:
        """Remove the whole template cache; returns the number of packages dropped."""
        count = len(self.list_packages())
        root = self._settings.template_root
        if root.exists():
            shutil.rmtree(root)
            logger.info("removed template cache %s", root)
        return count
