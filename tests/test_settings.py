from __future__ import annotations

from pathlib import Path

import pytest

from stencil import __version__
from stencil.settings import DEFAULT_REGISTRY, load_settings


def test_defaults_follow_home(tmp_path: Path) -> None:
    settings = load_settings({"STENCIL_HOME": str(tmp_path / "home")})

    assert settings.home_dir == tmp_path / "home"
    assert settings.store_dir == tmp_path / "home" / "template" / "node_modules"
    assert settings.registry_url == DEFAULT_REGISTRY
    assert settings.telemetry is True
    assert settings.cli_version == __version__


def test_config_file_and_env_overrides(tmp_path: Path) -> None:
    home = tmp_path / "home"
    home.mkdir()
    (home / "config.yaml").write_text(
        "registry: https://mirror.example/\ncatalog: ~/catalog.yaml\ntelemetry: false\nnode: /opt/node/bin/node\nhttp_timeout: 3\n",
        encoding="utf-8",
    )

    from_config = load_settings({"STENCIL_HOME": str(home)})
    from_env = load_settings(
        {"STENCIL_HOME": str(home), "STENCIL_REGISTRY": "https://other.example", "STENCIL_TELEMETRY": "1"}
    )

    assert from_config.registry_url == "https://mirror.example"
    assert from_config.catalog_path == Path("~/catalog.yaml").expanduser()
    assert from_config.telemetry is False
    assert from_config.node_bin == "/opt/node/bin/node"
    assert from_config.http_timeout == 3.0
    assert from_env.registry_url == "https://other.example"
    assert from_env.telemetry is True


def test_invalid_config_is_reported(tmp_path: Path) -> None:
    home = tmp_path / "home"
    home.mkdir()
    (home / "config.yaml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings({"STENCIL_HOME": str(home)})
