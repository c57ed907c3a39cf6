"""Runtime settings for the stencil CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from stencil import __version__

DEFAULT_REGISTRY = "https://registry.npmjs.org"
DEFAULT_HOME_NAME = ".stencil"
CONFIG_FILENAME = "config.yaml"
CLI_PACKAGE = "stencil-cli"

_DISABLE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    template_root: Path
    state_dir: Path
    log_dir: Path
    registry_url: str = DEFAULT_REGISTRY
    node_bin: str = "node"
    http_timeout: float = 10.0
    catalog_path: Path | None = None
    telemetry: bool = True
    cli_version: str = __version__
    cli_package: str = CLI_PACKAGE

    @property
    def store_dir(self) -> Path:
        return self.template_root / "node_modules"

    @property
    def user_catalog_file(self) -> Path:
        return self.home_dir / "catalog.yaml"

    @classmethod
    def for_home(cls, home: Path, **overrides: Any) -> "RuntimeSettings":
        return cls(
            home_dir=home,
            template_root=home / "template",
            state_dir=home / "state",
            log_dir=home / "logs",
            **overrides,
        )


def _default_home_dir(environ: Mapping[str, str]) -> Path:
    custom = environ.get("STENCIL_HOME")
    if custom:
        return Path(custom).expanduser()
    return Path.home() / DEFAULT_HOME_NAME


def _load_config_file(home: Path) -> dict[str, Any]:
    path = home / CONFIG_FILENAME
    if not path.exists():
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid config file {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return payload


def load_settings(environ: Mapping[str, str] | None = None) -> RuntimeSettings:
    """Build settings from the environment and ``<home>/config.yaml``.

    This is the only place that reads process-wide state; services receive
    the resulting object explicitly.
    """
    env = os.environ if environ is None else environ
    home = _default_home_dir(env)
    config = _load_config_file(home)

    registry = env.get("STENCIL_REGISTRY") or config.get("registry") or DEFAULT_REGISTRY
    catalog = config.get("catalog")
    telemetry_flag = env.get("STENCIL_TELEMETRY")
    if telemetry_flag is not None:
        telemetry = telemetry_flag.strip().lower() not in _DISABLE_VALUES
    else:
        telemetry = bool(config.get("telemetry", True))

    return RuntimeSettings.for_home(
        home,
        registry_url=str(registry).rstrip("/"),
        node_bin=str(config.get("node", "node")),
        http_timeout=float(config.get("http_timeout", 10.0)),
        catalog_path=Path(catalog).expanduser() if catalog else None,
        telemetry=telemetry,
    )
