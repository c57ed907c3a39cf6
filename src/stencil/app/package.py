"""Versioned template package handle backed by the on-disk cache."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from stencil.app.versions import resolve_latest
from stencil.domain.errors import BackendError, InstallError, RegistryError, UpdateError
from stencil.domain.template import LATEST, PackageSpec
from stencil.ports.backend import PackageBackend
from stencil.ports.registry import RegistryClient

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"
TEMPLATE_DIR = "template"


def cache_key(name: str, version: str) -> str:
    """Directory name for ``name@version`` inside the store (npminstall layout)."""
    return f"_{name.replace('/', '_')}@{version}@{name}"


def find_manifest_dir(start: Path) -> Path | None:
    """Nearest directory at or above ``start`` holding a ``package.json``."""
    current = start.expanduser().resolve()
    for candidate in (current, *current.parents):
        if (candidate / MANIFEST_FILENAME).is_file():
            return candidate
    return None


def format_path(path: Path) -> str:
    # embedded into generated source text, so always forward slashes
    return path.as_posix()


class PackageHandle:
    """One (name, version) package, either cached under ``store_dir`` or local.

    In cache mode the package lives at ``store_dir/_<name>@<version>@<name>``
    and is installed or refreshed through the backend. In local mode
    (``store_dir`` is ``None``) the package already sits at ``target_root``
    and is never installed or updated.
    """

    def __init__(
        self,
        spec: PackageSpec,
        *,
        target_root: Path,
        registry: RegistryClient,
        backend: PackageBackend | None = None,
        store_dir: Path | None = None,
    ) -> None:
        self.name = spec.name
        self.version = spec.version
        self.target_root = target_root
        self.store_dir = store_dir
        self._registry = registry
        self._backend = backend

    @property
    def cached(self) -> bool:
        return self.store_dir is not None

    @property
    def spec(self) -> PackageSpec:
        return PackageSpec(self.name, self.version)

    @property
    def cache_path(self) -> Path:
        return self.cache_path_for(self.version)

    def cache_path_for(self, version: str) -> Path:
        if self.store_dir is None:
            raise InstallError(f"{self.name} is a local package and has no cache path")
        if version == LATEST:
            raise RegistryError(f"version of {self.name} must be resolved before computing its cache path")
        return self.store_dir / cache_key(self.name, version)

    @property
    def root(self) -> Path:
        return self.cache_path if self.cached else self.target_root

    def prepare(self) -> None:
        if self.store_dir is not None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
        if self.version == LATEST:
            latest = resolve_latest(self._registry, self.name)
            if latest is None:
                raise RegistryError(f"cannot resolve latest version of {self.name}")
            self.version = latest

    def exists(self) -> bool:
        if not self.cached:
            return self.target_root.exists()
        self.prepare()
        return self.cache_path.exists()

    def install(self) -> None:
        if not self.cached:
            raise InstallError(f"{self.name} is a local package at {self.target_root}; nothing to install")
        self.prepare()
        try:
            self._materialise(self.version)
        except BackendError as exc:
            raise InstallError(f"failed to install {self.name}@{self.version}: {exc}") from exc

    def update(self) -> None:
        if not self.cached:
            return
        self.prepare()
        latest = resolve_latest(self._registry, self.name)
        if latest is None:
            raise UpdateError(f"cannot resolve latest version of {self.name}")
        if not self.cache_path_for(latest).exists():
            try:
                self._materialise(latest)
            except BackendError as exc:
                raise UpdateError(f"failed to update {self.name} to {latest}: {exc}") from exc
        self.version = latest
        logger.debug("current %s version: %s", self.name, self.version)

    def entry_point(self) -> str | None:
        manifest_dir = find_manifest_dir(self.root)
        if manifest_dir is None:
            return None
        try:
            manifest = json.loads((manifest_dir / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        main = manifest.get("main") if isinstance(manifest, dict) else None
        if not main or not isinstance(main, str):
            return None
        return format_path((manifest_dir / main).resolve())

    def template_dir(self, relative_root: str = "") -> Path:
        base = self.root / TEMPLATE_DIR
        return base / relative_root if relative_root else base

    def _materialise(self, version: str) -> None:
        if self._backend is None:
            raise BackendError("no package backend configured")
        assert self.store_dir is not None
        logger.debug("installing %s@%s into %s", self.name, version, self.store_dir)
        self._backend.install(
            self.name,
            version,
            target_root=self.target_root,
            store_dir=self.store_dir,
            cache_path=self.cache_path_for(version),
        )

    def __repr__(self) -> str:
        mode = "cache" if self.cached else "local"
        return f"PackageHandle({self.name}@{self.version}, mode={mode})"
