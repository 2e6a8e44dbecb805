"""Utility helpers for the birthday notifier."""
from __future__ import annotations

import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import zoneinfo


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory of ``path`` exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def now_local(tz_name: str) -> datetime:
    """Return the current time in the given timezone."""

    tz = zoneinfo.ZoneInfo(tz_name)
    return datetime.now(tz=tz)


def today_local(tz_name: str) -> date:
    """Return the current calendar date in the given timezone."""

    return now_local(tz_name).date()


def json_dumps(data: Any) -> str:
    """Serialize ``data`` to JSON with deterministic formatting."""

    return json.dumps(data, ensure_ascii=False, sort_keys=True, default=str)


def fields(**values: Any) -> Dict[str, Dict[str, Any]]:
    """Build the ``extra`` mapping that attaches structured fields to a log record."""

    return {"fields": values}


class FieldsFormatter(logging.Formatter):
    """Render ``record.fields`` as ``key=value`` pairs, or the whole record as JSON."""

    def __init__(self, *, json_format: bool = False) -> None:
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        record_fields: Dict[str, Any] = getattr(record, "fields", None) or {}
        if self.json_format:
            payload: Dict[str, Any] = {
                "time": self.formatTime(record),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            payload.update(record_fields)
            if record.exc_info:
                payload["exc"] = self.formatException(record.exc_info)
            return json_dumps(payload)

        line = super().format(record)
        if record_fields:
            pairs = " ".join(f"{key}={value}" for key, value in record_fields.items())
            line = f"{line} {pairs}"
        return line


def configure_logging(level: str = "INFO", file: Optional[Path] = None, json_format: bool = False) -> None:
    """Install stderr (and optionally file) handlers on the root logger."""

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if file is not None:
        ensure_parent_dir(file)
        handlers.append(logging.FileHandler(file, mode="a", encoding="utf-8"))

    formatter = FieldsFormatter(json_format=json_format)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    # APScheduler logs every job execution at INFO.
    logging.getLogger("apscheduler").setLevel(max(logging.WARNING, logging.getLogger().level))
