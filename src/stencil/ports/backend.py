"""Port definitions for the package-manager backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class PackageBackend(ABC):
    @abstractmethod
    def install(self, name: str, version: str, *, target_root: Path, store_dir: Path, cache_path: Path) -> None:
        """Materialise ``name@version`` at ``cache_path`` inside ``store_dir``.

        ``target_root`` is the directory the package is linked under. Raise
        :class:`stencil.domain.errors.BackendError` on failure.
        """
