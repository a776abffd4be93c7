"""Structured turn events for the interview engine.

``log_event`` writes one human-readable line to stdout and, when file logs are
enabled, a JSON line plus the same human line to rotating files. Participant
text is never written: fields named in ``_PRIVATE_FIELDS`` are replaced by
their length.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Dict, List

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "1") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/interview-events.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

_HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# Keys promoted onto the human line, in this order
_HUMAN_KEYS = (
    "decision",
    "phase",
    "strategy",
    "verdict",
    "step",
    "outcome",
    "status",
    "turn_id",
    "turn_count",
    "ms",
    "error",
)
_PRIVATE_FIELDS = frozenset({"content", "message", "question", "empathy", "transcript"})

_events = logging.getLogger("interview.events")
_events.setLevel(LOG_LEVEL)
_events.propagate = False


class _Channel(logging.Filter):
    """Route a record to JSON or human handlers by its ``is_json`` flag."""

    def __init__(self, json_lines: bool) -> None:
        super().__init__()
        self.json_lines = json_lines

    def filter(self, record: logging.LogRecord) -> bool:
        return bool(getattr(record, "is_json", False)) is self.json_lines


def _rotating(path: str, fmt: str, json_lines: bool) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    handler.addFilter(_Channel(json_lines))
    return handler


def _build_handlers() -> List[logging.Handler]:
    console = logging.StreamHandler(stream=sys.stdout)
    console.setLevel(LOG_LEVEL)
    console.setFormatter(logging.Formatter(_HUMAN_FORMAT, datefmt=_DATE_FORMAT))
    console.addFilter(_Channel(json_lines=False))
    handlers: List[logging.Handler] = [console]
    if not ENABLE_FILE_LOGS:
        return handlers

    os.makedirs(os.path.dirname(LOG_FILE) or ".", exist_ok=True)
    stem, ext = os.path.splitext(LOG_FILE)
    handlers.append(_rotating(f"{stem}.jsonl", "%(message)s", json_lines=True))
    handlers.append(_rotating(f"{stem}-human{ext or '.log'}", _HUMAN_FORMAT, json_lines=False))
    return handlers


def _ensure_handlers() -> None:
    if not _events.handlers:
        for handler in _build_handlers():
            _events.addHandler(handler)


def _scrub(fields: Dict[str, Any]) -> Dict[str, Any]:
    clean: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in _PRIVATE_FIELDS and isinstance(value, str):
            clean[f"{key}_chars"] = len(value)
        else:
            clean[key] = value
    return clean


def _human_line(evt: Dict[str, Any]) -> str:
    parts = [f"conversation={evt.get('conversation_id')}", f"kind={evt.get('kind')}"]
    parts.extend(f"{key}={evt[key]}" for key in _HUMAN_KEYS if evt.get(key) is not None)
    return " ".join(parts)


def _emit(level: int, message: str, *, is_json: bool) -> None:
    record = _events.makeRecord(_events.name, level, "", 0, message, (), None)
    record.is_json = is_json  # type: ignore[attr-defined]
    _events.handle(record)


def log_event(kind: str, conversation_id: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Record one turn event (``route``, ``parse``, ``enrichment``, ...)."""

    _ensure_handlers()
    event: Dict[str, Any] = {
        "ts": time.time(),
        "event_id": uuid.uuid4().hex,
        "kind": kind,
        "conversation_id": conversation_id,
    }
    event.update(_scrub(fields))

    _emit(level, _human_line(event), is_json=False)
    if ENABLE_FILE_LOGS:
        _emit(level, json.dumps(event, ensure_ascii=False, default=str), is_json=True)


__all__ = ["ENABLE_FILE_LOGS", "log_event"]
