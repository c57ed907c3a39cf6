"""Port definitions for package registry metadata."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class RegistryClient(ABC):
    @abstractmethod
    def fetch_package(self, name: str) -> dict[str, Any] | None:
        """Return the registry document for ``name`` or ``None`` when unavailable."""

    def fetch_versions(self, name: str) -> list[str]:
        """Return every published version of ``name`` (empty when unavailable)."""
        document = self.fetch_package(name)
        if not document:
            return []
        versions = document.get("versions") or {}
        if not isinstance(versions, dict):
            return []
        return list(versions.keys())
