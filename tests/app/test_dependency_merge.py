from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from stencil.app.dependencies import DependencyConflict, merge_dependencies, merge_manifests, upper_bound
from stencil.app.package import find_manifest_dir
from stencil.domain.errors import InstallError, ManifestError


def _manifest(directory: Path, payload: dict) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.json"
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def test_conflicting_major_keeps_target() -> None:
    result = merge_dependencies({"a": "^2.0.0"}, {"a": "^1.0.0"})

    assert result.merged == {"a": "^1.0.0"}
    assert result.conflicts == [DependencyConflict("a", "^2.0.0", "^1.0.0")]
    assert result.added == []


def test_new_dependency_is_added_without_conflicts() -> None:
    result = merge_dependencies({"b": "^1.2.0"}, {})

    assert result.merged == {"b": "^1.2.0"}
    assert result.conflicts == []
    assert [(dep.name, dep.range) for dep in result.added] == [("b", "^1.2.0")]


def test_same_upper_bound_is_not_a_conflict() -> None:
    result = merge_dependencies({"vue": "^2.6.0"}, {"vue": "^2.5.0"})

    assert result.conflicts == []
    assert result.merged == {"vue": "^2.5.0"}


def test_upper_bound_variants() -> None:
    assert upper_bound("^1.2.0") == upper_bound("^1.9.0")
    assert upper_bound("^1.2.0") != upper_bound("^2.0.0")
    assert upper_bound(">=1.0.0") is None
    assert upper_bound("github:user/repo") == "github:user/repo"


def test_merge_manifests_rewrites_only_dependencies(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    _manifest(tmp_path / "tpl", {"name": "tpl", "dependencies": {"a": "^2.0.0", "b": "^1.2.0"}})
    target = _manifest(
        tmp_path / "app",
        {"name": "app", "version": "1.0.0", "scripts": {"dev": "vite"}, "dependencies": {"a": "^1.0.0"}},
    )
    page = tmp_path / "app" / "src" / "views" / "Home"
    page.mkdir(parents=True)

    with caplog.at_level(logging.WARNING, logger="stencil.app.dependencies"):
        result = merge_manifests(tmp_path / "tpl", page)

    assert result is not None
    written = json.loads(target.read_text(encoding="utf-8"))
    assert written == {
        "name": "app",
        "version": "1.0.0",
        "scripts": {"dev": "vite"},
        "dependencies": {"a": "^1.0.0", "b": "^1.2.0"},
    }
    assert target.read_text(encoding="utf-8").startswith('{\n  "name"')
    assert [record.getMessage() for record in caplog.records] == ["a conflict: ^2.0.0 => ^1.0.0"]


def test_merge_manifests_is_idempotent(tmp_path: Path) -> None:
    _manifest(tmp_path / "tpl", {"dependencies": {"a": "^2.0.0", "b": "^1.2.0"}})
    target = _manifest(tmp_path / "app", {"dependencies": {"a": "^1.0.0"}})

    first = merge_manifests(tmp_path / "tpl", tmp_path / "app")
    snapshot = target.read_text(encoding="utf-8")
    second = merge_manifests(tmp_path / "tpl", tmp_path / "app")

    assert first is not None and second is not None
    assert second.added == []
    assert second.conflicts == first.conflicts
    assert target.read_text(encoding="utf-8") == snapshot


def test_merge_manifests_skips_without_target_manifest(tmp_path: Path) -> None:
    _manifest(tmp_path / "tpl", {"dependencies": {"a": "^1.0.0"}})
    isolated = tmp_path / "elsewhere"
    isolated.mkdir()

    if find_manifest_dir(isolated) is not None:  # pragma: no cover - depends on the host layout
        pytest.skip("a package.json above tmp_path would be picked up")
    assert merge_manifests(tmp_path / "tpl", isolated) is None


@pytest.mark.parametrize("content", ["{ not json", "[1, 2]"])
def test_malformed_target_manifest_is_a_manifest_error(tmp_path: Path, content: str) -> None:
    _manifest(tmp_path / "tpl", {"dependencies": {"a": "^1.0.0"}})
    target = tmp_path / "app"
    target.mkdir()
    (target / "package.json").write_text(content, encoding="utf-8")

    with pytest.raises(ManifestError) as excinfo:
        merge_manifests(tmp_path / "tpl", target)

    assert isinstance(excinfo.value, InstallError)
    assert (target / "package.json").read_text(encoding="utf-8") == content
