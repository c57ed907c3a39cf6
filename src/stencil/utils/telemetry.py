"""Local telemetry events (JSONL, opt-out via settings)."""

from __future__ import annotations

import json
import logging
import time
from collections import Counter
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Iterator

from jsonschema import Draft202012Validator

from stencil.resources import load_schema
from stencil.settings import RuntimeSettings

LEVELS = {"info", "warn", "error"}
LOG_FILENAME = "telemetry.jsonl"

logger = logging.getLogger(__name__)


def record_event(
    settings: RuntimeSettings,
    event: str,
    payload: dict[str, Any] | None = None,
    *,
    level: str = "info",
    status: str | None = None,
    duration_ms: float | None = None,
) -> None:
    if not settings.telemetry:
        return
    record: dict[str, Any] = {
        "ts": time.time(),
        "event": event,
        "payload": payload or {},
        "level": level,
    }
    if status:
        record["status"] = status
    if duration_ms is not None:
        record["durationMs"] = duration_ms
    _validate_record(record)
    _validator().validate(record)
    log_path = _log_path(settings)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")


def _log_path(settings: RuntimeSettings) -> Path:
    return settings.log_dir / LOG_FILENAME


def iter_events(settings: RuntimeSettings) -> Iterator[dict[str, Any]]:
    """Yield recorded events in write order, skipping lines that fail the record schema."""
    log_path = _log_path(settings)
    if not log_path.exists():
        return
    validator = _validator()
    with log_path.open("r", encoding="utf-8") as fh:
        for number, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("skip unreadable telemetry line %d", number)
                continue
            if not validator.is_valid(record):
                logger.debug("skip malformed telemetry record on line %d", number)
                continue
            yield record


def summarize(events: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Aggregate events per command, level and template.

    Install events (``add.*`` and ``init``) carry the template id, the
    cache action and a duration, which feed ``templates``, ``actions``
    and ``durationMs``.
    """
    by_event: Counter[str] = Counter()
    by_level: Counter[str] = Counter()
    templates: Counter[str] = Counter()
    actions: Counter[str] = Counter()
    durations: list[float] = []
    for evt in events:
        by_event[evt["event"]] += 1
        by_level[evt["level"]] += 1
        payload = evt["payload"]
        if isinstance(payload.get("template"), str):
            templates[payload["template"]] += 1
        if isinstance(payload.get("action"), str):
            actions[payload["action"]] += 1
        if "durationMs" in evt:
            durations.append(evt["durationMs"])
    return {
        "total": sum(by_event.values()),
        "by_event": dict(by_event),
        "by_level": dict(by_level),
        "templates": dict(templates),
        "actions": dict(actions),
        "durationMs": {
            "total": round(sum(durations), 3),
            "max": round(max(durations), 3) if durations else 0,
        },
    }


def clear(settings: RuntimeSettings) -> bool:
    """Delete the event log. Returns False when there was nothing to delete."""
    log_path = _log_path(settings)
    try:
        log_path.unlink()
    except FileNotFoundError:
        return False
    return True


def _validate_record(record: dict[str, Any]) -> None:
    if not isinstance(record.get("event"), str) or not record["event"].strip():
        raise ValueError("Telemetry event must have non-empty string 'event'")
    if record.get("level", "info") not in LEVELS:
        raise ValueError(f"Telemetry level '{record['level']}' is not supported")


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    return Draft202012Validator(load_schema("telemetry.schema.json"))
