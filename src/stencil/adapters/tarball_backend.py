"""Package backend that installs registry tarballs into the template cache."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tarfile
import tempfile
from pathlib import Path

import requests

from stencil.domain.errors import BackendError
from stencil.ports.backend import PackageBackend
from stencil.ports.registry import RegistryClient

logger = logging.getLogger(__name__)

PACKAGE_PREFIX = "package"


class TarballBackend(PackageBackend):
    """Download ``dist.tarball`` and lay it out like npminstall's store.

    The extracted package lands at ``cache_path`` and
    ``<target_root>/node_modules/<name>`` links to it.
    """

    def __init__(
        self,
        registry: RegistryClient,
        *,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self._registry = registry
        self._timeout = timeout
        self._session = session or requests.Session()

    def install(self, name: str, version: str, *, target_root: Path, store_dir: Path, cache_path: Path) -> None:
        dist = self._dist_info(name, version)
        tarball_url = dist.get("tarball")
        if not tarball_url:
            raise BackendError(f"registry has no tarball for {name}@{version}")

        try:
            store_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(dir=store_dir, prefix=".tmp-") as tmp_dir:
                tmp_path = Path(tmp_dir)
                archive = tmp_path / "package.tgz"
                self._download(tarball_url, archive)
                expected = dist.get("shasum")
                if expected:
                    actual = hashlib.sha1(archive.read_bytes()).hexdigest()  # noqa: S324 - registry checksum
                    if actual != expected:
                        raise BackendError(
                            f"checksum mismatch for {name}@{version}: expected {expected}, got {actual}"
                        )
                extracted = tmp_path / "extracted"
                try:
                    with tarfile.open(archive, "r:gz") as tar:
                        tar.extractall(extracted, filter="data")
                except (tarfile.TarError, OSError) as exc:
                    raise BackendError(f"cannot extract {name}@{version}: {exc}") from exc

                package_root = _package_root(extracted)
                if cache_path.exists():
                    shutil.rmtree(cache_path)
                cache_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(package_root), cache_path)

            self._link(name, target_root, cache_path)
        except OSError as exc:
            raise BackendError(f"cannot install {name}@{version} into {cache_path}: {exc}") from exc
        logger.debug("installed %s@%s into %s", name, version, cache_path)

    def _dist_info(self, name: str, version: str) -> dict:
        document = self._registry.fetch_package(name)
        if not document:
            raise BackendError(f"package {name} not found in registry")
        manifest = (document.get("versions") or {}).get(version)
        if not isinstance(manifest, dict):
            raise BackendError(f"version {version} of {name} not found in registry")
        dist = manifest.get("dist") or {}
        if not isinstance(dist, dict):
            raise BackendError(f"registry metadata for {name}@{version} has no dist section")
        return dist

    def _download(self, url: str, destination: Path) -> None:
        logger.debug("downloading %s", url)
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise BackendError(f"download failed for {url}: {exc}") from exc
        if response.status_code != 200:
            raise BackendError(f"download failed for {url}: HTTP {response.status_code}")
        try:
            destination.write_bytes(response.content)
        except OSError as exc:
            raise BackendError(f"cannot write {destination}: {exc}") from exc

    def _link(self, name: str, target_root: Path, cache_path: Path) -> None:
        link = target_root / "node_modules" / name
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink() or link.is_file():
            link.unlink()
        elif link.exists():
            shutil.rmtree(link)
        try:
            os.symlink(cache_path, link, target_is_directory=True)
        except OSError:
            shutil.copytree(cache_path, link)


def _package_root(extracted: Path) -> Path:
    entries = list(extracted.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    prefixed = extracted / PACKAGE_PREFIX
    if prefixed.is_dir():
        return prefixed
    return extracted
