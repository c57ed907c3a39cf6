from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

import pytest

from stencil.app.installers import CustomInstaller, InstallContext, NormalInstaller
from stencil.domain.errors import CustomEntryMissingError, CustomInstallError


class RecordingRunner:
    def __init__(self, exit_code: int = 0) -> None:
        self.exit_code = exit_code
        self.commands: list[list[str]] = []

    def __call__(self, command: Sequence[str]) -> int:
        self.commands.append(list(command))
        return self.exit_code


def _context(tmp_path: Path, **overrides) -> InstallContext:
    values = {
        "template_path": tmp_path / "tpl",
        "target_path": tmp_path / "out",
        "variables": {"name": "home"},
    }
    values.update(overrides)
    return InstallContext(**values)


def test_normal_installer_copies_and_renders(tmp_path: Path) -> None:
    template = tmp_path / "tpl"
    (template / "sub").mkdir(parents=True)
    (template / "index.vue").write_text("<div><%= name %></div>", encoding="utf-8")
    (template / "sub" / "style.css").write_text(".<%= name %> {}", encoding="utf-8")

    outcome = NormalInstaller(max_workers=2).install(_context(tmp_path, merge_dependencies=False))

    assert (tmp_path / "out" / "index.vue").read_text(encoding="utf-8") == "<div>home</div>"
    assert (tmp_path / "out" / "sub" / "style.css").read_text(encoding="utf-8") == ".home {}"
    assert (template / "index.vue").read_text(encoding="utf-8") == "<div><%= name %></div>"
    assert outcome.merge is None
    assert len(outcome.rendered) == 2


def test_custom_command_embeds_entry_and_options() -> None:
    installer = CustomInstaller("node")
    options = {"templatePath": "/t", "targetPath": "/o", "templateDescriptor": {"id": "x"}}

    command = installer.command("/cache/pkg/lib/index.js", options)

    assert command[:2] == ["node", "-e"]
    assert command[2] == f'require("/cache/pkg/lib/index.js").call(null, {json.dumps(options)})'


def test_custom_installer_runs_entry_point(tmp_path: Path) -> None:
    runner = RecordingRunner()
    installer = CustomInstaller("node", runner=runner)

    outcome = installer.install(_context(tmp_path, entry_point="/cache/pkg/index.js", options={"targetPath": "x"}))

    assert outcome.exit_code == 0
    assert len(runner.commands) == 1
    assert not (tmp_path / "out").exists()


def test_custom_installer_surfaces_exit_code(tmp_path: Path) -> None:
    installer = CustomInstaller("node", runner=RecordingRunner(exit_code=3))

    with pytest.raises(CustomInstallError) as excinfo:
        installer.install(_context(tmp_path, entry_point="/cache/pkg/index.js"))

    assert excinfo.value.exit_code == 3


def test_custom_installer_requires_entry_point(tmp_path: Path) -> None:
    runner = RecordingRunner()

    with pytest.raises(CustomEntryMissingError):
        CustomInstaller(runner=runner).install(_context(tmp_path))
    assert runner.commands == []


def test_custom_installer_missing_node(tmp_path: Path) -> None:
    def missing(_command: Sequence[str]) -> int:
        raise FileNotFoundError("node")

    with pytest.raises(CustomInstallError) as excinfo:
        CustomInstaller(runner=missing).install(_context(tmp_path, entry_point="/x.js"))

    assert excinfo.value.exit_code == 127
