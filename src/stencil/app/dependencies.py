"""Merge template dependencies into the target project's manifest."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, NamedTuple

import nodesemver

from stencil.app.package import MANIFEST_FILENAME, find_manifest_dir
from stencil.domain.errors import ManifestError

logger = logging.getLogger(__name__)


class ManifestDependency(NamedTuple):
    name: str
    range: str


@dataclass(frozen=True)
class DependencyConflict:
    name: str
    template_range: str
    target_range: str

    def describe(self) -> str:
        return f"{self.name} conflict: {self.template_range} => {self.target_range}"


@dataclass
class MergeResult:
    merged: dict[str, str]
    added: list[ManifestDependency] = field(default_factory=list)
    conflicts: list[DependencyConflict] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added)


def upper_bound(range_: str) -> str | None:
    """Text after the first ``<`` of the normalised range, ``None`` when unbounded.

    Ranges that cannot be normalised fall back to their raw text.
    """
    normalised = nodesemver.valid_range(range_, loose=False)
    if normalised is None:
        return range_.strip()
    _, separator, tail = normalised.partition("<")
    return tail.strip() if separator else None


def merge_dependencies(template: Mapping[str, str], target: Mapping[str, str]) -> MergeResult:
    """Target entries always win; template-only entries are appended."""
    result = MergeResult(merged=dict(target))
    for name, template_range in template.items():
        if name not in target:
            logger.debug("template introduces dependency %s@%s", name, template_range)
            result.merged[name] = template_range
            result.added.append(ManifestDependency(name, template_range))
            continue
        target_range = target[name]
        if upper_bound(template_range) != upper_bound(target_range):
            result.conflicts.append(DependencyConflict(name, template_range, target_range))
    return result


def _read_manifest(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ManifestError(f"failed to read {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ManifestError(f"{path} must contain a JSON object")
    return payload


def _dependency_map(manifest: Mapping[str, Any]) -> dict[str, str]:
    deps = manifest.get("dependencies") or {}
    if not isinstance(deps, dict):
        return {}
    return {str(name): str(value) for name, value in deps.items()}


def merge_manifests(template_dir: Path, target_dir: Path) -> MergeResult | None:
    """Merge the nearest manifests above ``template_dir`` and ``target_dir``.

    Only the target's ``dependencies`` field is rewritten, and only when the
    template adds entries. Returns ``None`` when either manifest is missing.
    """
    template_root = find_manifest_dir(template_dir)
    target_root = find_manifest_dir(target_dir)
    logger.debug("template manifest dir: %s", template_root)
    logger.debug("target manifest dir: %s", target_root)
    if template_root is None or target_root is None:
        logger.debug("manifest missing, dependency merge skipped")
        return None

    template_manifest = _read_manifest(template_root / MANIFEST_FILENAME)
    target_path = target_root / MANIFEST_FILENAME
    target_manifest = _read_manifest(target_path)

    result = merge_dependencies(_dependency_map(template_manifest), _dependency_map(target_manifest))
    for conflict in result.conflicts:
        logger.warning(conflict.describe())

    if not result.changed:
        return result
    target_manifest["dependencies"] = result.merged
    try:
        target_path.write_text(json.dumps(target_manifest, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"failed to write {target_path}: {exc}") from exc
    return result
