"""Strategies that materialise a cached template into the target directory."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence

from stencil.app.dependencies import MergeResult, merge_manifests
from stencil.app.renderer import render_tree
from stencil.domain.errors import CustomEntryMissingError, CustomInstallError

logger = logging.getLogger(__name__)

Runner = Callable[[Sequence[str]], int]


@dataclass
class InstallContext:
    template_path: Path
    target_path: Path
    variables: dict[str, Any]
    ignore: tuple[str, ...] = ()
    entry_point: str | None = None
    options: dict[str, Any] = field(default_factory=dict)
    merge_dependencies: bool = True


@dataclass
class InstallOutcome:
    target_path: Path
    rendered: list[Path] = field(default_factory=list)
    merge: MergeResult | None = None
    exit_code: int = 0


class Installer(ABC):
    kind: str

    @abstractmethod
    def install(self, context: InstallContext) -> InstallOutcome:
        """Materialise ``context.template_path`` into ``context.target_path``."""


class NormalInstaller(Installer):
    """Copy the template tree, render it in place, then merge dependencies."""

    kind = "normal"

    def __init__(self, *, max_workers: int | None = None) -> None:
        self._max_workers = max_workers

    def install(self, context: InstallContext) -> InstallOutcome:
        context.target_path.mkdir(parents=True, exist_ok=True)
        shutil.copytree(context.template_path, context.target_path, dirs_exist_ok=True)
        rendered = render_tree(
            context.target_path,
            context.variables,
            context.ignore,
            max_workers=self._max_workers,
        )
        merge = None
        if context.merge_dependencies:
            merge = merge_manifests(context.template_path, context.target_path)
        return InstallOutcome(target_path=context.target_path, rendered=rendered, merge=merge)


def _run_inherited(command: Sequence[str]) -> int:
    return subprocess.run(list(command), check=False).returncode


class CustomInstaller(Installer):
    """Hand installation to the template's own entry point in a child process.

    The entry module's export is called with a single JSON options object;
    the child's exit code decides success.
    """

    kind = "custom"

    def __init__(self, node_bin: str = "node", *, runner: Runner | None = None) -> None:
        self._node_bin = node_bin
        self._runner = runner or _run_inherited

    def command(self, entry_point: str, options: dict[str, Any]) -> list[str]:
        code = f"require({json.dumps(entry_point)}).call(null, {json.dumps(options, ensure_ascii=False)})"
        return [self._node_bin, "-e", code]

    def install(self, context: InstallContext) -> InstallOutcome:
        if not context.entry_point:
            raise CustomEntryMissingError(
                f"custom template at {context.template_path} declares no entry point"
            )
        command = self.command(context.entry_point, context.options)
        logger.debug("running custom entry point %s", context.entry_point)
        try:
            exit_code = self._runner(command)
        except OSError as exc:
            raise CustomInstallError(f"cannot start {self._node_bin}: {exc}", exit_code=127) from exc
        if exit_code != 0:
            raise CustomInstallError(
                f"custom installer {context.entry_point} exited with code {exit_code}",
                exit_code=exit_code,
            )
        return InstallOutcome(target_path=context.target_path, exit_code=exit_code)
