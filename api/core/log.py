"""
Logging setup.

Console output always; optional JSON-lines file output per day when
LOG_TO_FILE is enabled.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import Settings


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=True)


def log_file_path(log_dir: str, *, now: datetime | None = None) -> Path:
    day = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    return Path(log_dir) / f"app-{day}.log"


class DailyFileHandler(logging.FileHandler):
    """
    Writes each record to `app-YYYY-MM-DD.log` for the UTC day it was created,
    switching files when the day changes.
    """

    def __init__(self, log_dir: str) -> None:
        self.log_dir = log_dir
        path = log_file_path(log_dir)
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(path, encoding="utf-8", delay=True)

    def emit(self, record: logging.LogRecord) -> None:
        path = log_file_path(self.log_dir, now=datetime.fromtimestamp(record.created, tz=timezone.utc))
        filename = os.path.abspath(path)
        if filename != self.baseFilename:
            # emit() runs under the handler lock.
            if self.stream is not None:
                self.stream.close()
                self.stream = None
            self.baseFilename = filename
        super().emit(record)


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level, logging.INFO))

    # Safe to call more than once (tests, reloads).
    if not any(getattr(h, "_portfolio_api", False) for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        console._portfolio_api = True  # type: ignore[attr-defined]
        root.addHandler(console)

        if settings.log_to_file:
            file_handler = DailyFileHandler(settings.log_dir)
            file_handler.setFormatter(JsonLineFormatter())
            file_handler._portfolio_api = True  # type: ignore[attr-defined]
            root.addHandler(file_handler)
