"""Resolve template and CLI versions against a package registry."""

from __future__ import annotations

import logging
from functools import cmp_to_key
from typing import Iterable

import nodesemver

from stencil.ports.registry import RegistryClient

logger = logging.getLogger(__name__)


def is_valid_version(value: str) -> bool:
    try:
        return bool(nodesemver.valid(value, loose=False))
    except (TypeError, ValueError):
        return False


def _compare(a: str, b: str) -> int:
    # build metadata has no precedence; equal versions fall back to their text
    order = nodesemver.compare(a, b, loose=False)
    if order:
        return order
    return (a > b) - (a < b)


def sort_versions(versions: Iterable[str]) -> list[str]:
    """Return valid versions, highest first. Invalid entries are dropped."""
    candidates = {version for version in versions if isinstance(version, str) and is_valid_version(version)}
    return sorted(candidates, key=cmp_to_key(_compare), reverse=True)


def latest_of(versions: Iterable[str]) -> str | None:
    ordered = sort_versions(versions)
    return ordered[0] if ordered else None


def satisfying_of(base_version: str, versions: Iterable[str]) -> list[str]:
    """Versions in ``^base_version``, highest first."""
    range_ = f"^{base_version}"
    return [v for v in sort_versions(versions) if nodesemver.satisfies(v, range_, loose=False)]


def resolve_latest(client: RegistryClient, name: str) -> str | None:
    versions = client.fetch_versions(name)
    logger.debug("%s versions: %s", name, versions)
    return latest_of(versions)


def resolve_satisfying(client: RegistryClient, base_version: str, name: str) -> str | None:
    matches = satisfying_of(base_version, client.fetch_versions(name))
    return matches[0] if matches else None


__all__ = [
    "is_valid_version",
    "latest_of",
    "resolve_latest",
    "resolve_satisfying",
    "satisfying_of",
    "sort_versions",
]
