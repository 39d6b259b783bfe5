"""Logging configuration shared by every entry point of the project."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON line.

    Dict messages are emitted as-is so callers can log structured
    events (``logger.info({"event": "...", ...})``).
    """

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            data: Dict[str, Any] = dict(record.msg)
        else:
            data = {"message": record.getMessage()}

        data.setdefault("level", record.levelname)
        data.setdefault("logger", record.name)
        if not data.get("time_local"):
            now = datetime.now(timezone.utc).astimezone()
            data["time_local"] = now.strftime("%Y-%m-%d %H:%M:%S")

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)


def build_logging_config(log_dir: Optional[Path], log_level: str = "INFO") -> dict:
    handlers: Dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        },
    }
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        # TimedRotatingFileHandler is not process-safe with multi-worker servers.
        handlers["file"] = {
            "class": "concurrent_log_handler.ConcurrentTimedRotatingFileHandler",
            "filename": str(log_dir / "clinic.log"),
            "when": "midnight",
            "interval": 1,
            "backupCount": 20,
            "formatter": "json",
            "encoding": "utf-8",
        }

    # Keep test output quiet.
    if "test" in sys.argv or "pytest" in (sys.argv[0] if sys.argv else ""):
        handlers = {name: {"class": "logging.NullHandler"} for name in handlers}

    names = list(handlers)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "clinic.logging_utils.JsonFormatter",
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": names,
            "level": log_level,
        },
        "loggers": {
            "django": {
                "handlers": names,
                "level": log_level,
                "propagate": False,
            },
            "django.server": {
                "handlers": names,
                "level": "WARNING",
                "propagate": False,
            },
            "django.request": {
                "handlers": names,
                "level": "ERROR",
                "propagate": False,
            },
            "laboratory": {
                "handlers": names,
                "level": log_level,
                "propagate": False,
            },
            "laboratory.request": {
                "handlers": names,
                "level": log_level,
                "propagate": False,
            },
        },
    }
