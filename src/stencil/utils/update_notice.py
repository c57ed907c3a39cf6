"""Tell the user when a newer compatible stencil release is published."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, TextIO

import nodesemver

from stencil.app.versions import resolve_satisfying
from stencil.domain.errors import StencilError
from stencil.ports.registry import RegistryClient
from stencil.settings import RuntimeSettings
from stencil.utils.telemetry import record_event

logger = logging.getLogger(__name__)

STATE_FILENAME = "update.json"
CHECK_INTERVAL = timedelta(hours=6)


@dataclass
class UpdateState:
    last_checked: datetime | None = None
    latest_version: str | None = None
    status: str | None = None

    @classmethod
    def from_file(cls, path: Path) -> "UpdateState":
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return cls()
        if not isinstance(data, dict):
            return cls()
        last_checked = None
        if ts := data.get("last_checked"):
            try:
                last_checked = datetime.fromisoformat(ts)
            except (TypeError, ValueError):
                last_checked = None
        return cls(
            last_checked=last_checked,
            latest_version=data.get("latest_version"),
            status=data.get("status"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_checked": self.last_checked.isoformat() if self.last_checked else None,
            "latest_version": self.latest_version,
            "status": self.status,
        }


def _state_path(settings: RuntimeSettings) -> Path:
    return settings.state_dir / STATE_FILENAME


def _store_state(settings: RuntimeSettings, state: UpdateState) -> None:
    path = _state_path(settings)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(state.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    except OSError as exc:
        logger.debug("cannot store update state: %s", exc)


def _newer(candidate: str | None, current: str) -> bool:
    if not candidate:
        return False
    try:
        return bool(nodesemver.gt(candidate, current, loose=False))
    except (TypeError, ValueError):
        return False


def latest_compatible(
    settings: RuntimeSettings,
    registry: RegistryClient,
    *,
    now: datetime | None = None,
) -> str | None:
    """Newest ``^cli_version`` release, served from the state file within the check interval."""
    now = now or datetime.now(timezone.utc)
    state = UpdateState.from_file(_state_path(settings))
    if state.last_checked and now - state.last_checked < CHECK_INTERVAL:
        return state.latest_version if state.status == "ok" else None

    try:
        latest = resolve_satisfying(registry, settings.cli_version, settings.cli_package)
    except StencilError as exc:
        logger.debug("update check failed: %s", exc)
        latest = None
        status = "error"
    else:
        status = "ok" if latest else "error"
    _store_state(settings, UpdateState(last_checked=now, latest_version=latest, status=status))
    return latest


def maybe_notify(
    settings: RuntimeSettings,
    registry: RegistryClient,
    *,
    stream: TextIO | None = None,
    now: datetime | None = None,
) -> str | None:
    """Print an upgrade hint when a newer compatible release exists; never raises."""
    latest = latest_compatible(settings, registry, now=now)
    if not _newer(latest, settings.cli_version):
        return None
    out = stream or sys.stderr
    out.write(
        f"stencil: version {latest} is available (installed {settings.cli_version}). "
        f"Run `pip install --upgrade {settings.cli_package}`.\n"
    )
    record_event(settings, "update-notice", {"current": settings.cli_version, "latest": latest})
    return latest
