from __future__ import annotations

import json
import os
import shutil
import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SANDBOX_HOME = Path(os.environ.get("PYTEST_DEBUG_TEMPROOT", "/tmp/stencil-pytest")).resolve() / "global-home"
os.environ.setdefault("STENCIL_HOME", str(SANDBOX_HOME))
os.environ.setdefault("STENCIL_TELEMETRY", "0")
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from stencil.ports.backend import PackageBackend  # noqa: E402
from stencil.ports.registry import RegistryClient  # noqa: E402
from stencil.settings import RuntimeSettings  # noqa: E402


class FakeRegistry(RegistryClient):
    """In-memory registry: ``{name: [versions]}``."""

    def __init__(self, packages: dict[str, list[str]] | None = None) -> None:
        self.packages = packages or {}
        self.calls: list[str] = []

    def fetch_package(self, name: str) -> dict[str, Any] | None:
        self.calls.append(name)
        if name not in self.packages:
            return None
        return {"name": name, "versions": {version: {"version": version} for version in self.packages[name]}}


class FakeBackend(PackageBackend):
    """Copies prepared package directories into the cache instead of downloading."""

    def __init__(self, sources: dict[tuple[str, str], Path] | None = None) -> None:
        self.sources = sources or {}
        self.installs: list[tuple[str, str]] = []

    def install(self, name: str, version: str, *, target_root: Path, store_dir: Path, cache_path: Path) -> None:
        self.installs.append((name, version))
        source = self.sources.get((name, version))
        if source is None:
            from stencil.domain.errors import BackendError

            raise BackendError(f"no fixture for {name}@{version}")
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, cache_path)


def write_package(root: Path, files: dict[str, str], manifest: dict[str, Any] | None = None) -> Path:
    """Lay out a template package: ``package.json`` plus ``files`` relative to ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(json.dumps(manifest or {"name": root.name}, indent=2), encoding="utf-8")
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def settings(tmp_path: Path) -> RuntimeSettings:
    home = tmp_path / "home"
    for directory in (home, home / "state", home / "logs"):
        directory.mkdir(parents=True, exist_ok=True)
    return RuntimeSettings.for_home(home)


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_package():
    return write_package
