"""Packaged resources for stencil."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any

import yaml

__all__ = ["load_default_catalog", "load_schema"]


@lru_cache(maxsize=1)
def load_default_catalog() -> dict[str, Any]:
    """Return the template catalog shipped with the package."""

    raw = (resources.files(__name__) / "catalog.yaml").read_text("utf-8")
    return yaml.safe_load(raw) or {}


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    with (resources.files(__name__) / name).open("r", encoding="utf-8") as handle:
        return json.load(handle)
