"""Logging setup for the slicer.

Three sinks hang off the ``slicer`` logger: a console stream for humans,
a rotating text file and a rotating JSONL file that keeps the structured
``extra={"json": ...}`` payloads emitted by :mod:`slicer.telemetry`.
"""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from typing import Any

from .util.time import utc_now_iso

LOG_DIR_ENV = "SLICER_LOG_DIR"
LOG_LEVEL_ENV = "SLICER_LOG_LEVEL"

TEXT_LOG_NAME = "slicer.log"
JSON_LOG_NAME = "slicer.jsonl"
ROTATION_BACKUPS = 3
ROTATION_MAX_BYTES = 2 * 1024 * 1024

logger = logging.getLogger("slicer")

_log_dir: Path | None = None


def _event_payload(record: logging.LogRecord) -> Any | None:
    """Return the telemetry payload when *record* is a bare event line."""
    extra = getattr(record, "json", None)
    if not isinstance(extra, dict):
        return None
    event = extra.get("event")
    if not isinstance(event, str) or not isinstance(record.msg, str):
        return None
    if record.msg.strip() != event.strip():
        return None
    return extra.get("payload") or None


class ConsoleFormatter(logging.Formatter):
    """Short ``LEVEL: message`` lines with the event payload appended."""

    def __init__(self) -> None:
        super().__init__("%(levelname)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        payload = _event_payload(record)
        if payload is None:
            return line
        return f"{line} {json.dumps(payload, ensure_ascii=False, default=str)}"


class JsonFormatter(logging.Formatter):
    """Serialise records to one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        extra: Any = getattr(record, "json", None)
        if isinstance(extra, dict):
            data: dict[str, Any] = dict(extra)
        elif extra is None:
            data = {}
        else:
            data = {"data": extra}
        data.setdefault("message", record.message)
        data.setdefault("level", record.levelname)
        data.setdefault("logger", record.name)
        data.setdefault("timestamp", utc_now_iso())
        if record.exc_info and "exc_info" not in data:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False, default=str)


class JsonlHandler(RotatingFileHandler):
    """Rotating file handler writing :class:`JsonFormatter` lines."""

    def __init__(
        self,
        filename: Path | str,
        *,
        max_bytes: int = ROTATION_MAX_BYTES,
        backup_count: int = ROTATION_BACKUPS,
        delay: bool = False,
    ) -> None:
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
            delay=delay,
        )
        self.setFormatter(JsonFormatter())


def _resolve_log_dir(log_dir: str | Path | None) -> Path:
    """Pick the log directory: argument, then environment, then home."""
    if log_dir is None:
        env_dir = os.environ.get(LOG_DIR_ENV)
        log_dir = env_dir if env_dir else Path.home() / ".slicer" / "logs"
    path = Path(log_dir).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path.resolve()


def _console_level(default: int) -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(_console_level(level))
    handler.setFormatter(ConsoleFormatter())
    return handler


def _text_handler(directory: Path) -> logging.Handler:
    handler = RotatingFileHandler(
        directory / TEXT_LOG_NAME,
        encoding="utf-8",
        maxBytes=ROTATION_MAX_BYTES,
        backupCount=ROTATION_BACKUPS,
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    return handler


def configure_logging(level: int = logging.INFO, *, log_dir: str | Path | None = None) -> None:
    """Attach the slicer handlers; later calls leave them untouched.

    ``level`` only affects the console; both files always receive DEBUG
    records so refresh decisions can be reconstructed afterwards.
    ``SLICER_LOG_LEVEL`` overrides the console level by name.
    """
    global _log_dir

    if logger.handlers:
        if _log_dir is None:
            _log_dir = _resolve_log_dir(log_dir)
        return

    _log_dir = _resolve_log_dir(log_dir)
    # pythonw and frozen GUI builds run without stderr
    if sys.stderr is not None:
        logger.addHandler(_console_handler(level))
    logger.addHandler(_text_handler(_log_dir))
    json_handler = JsonlHandler(_log_dir / JSON_LOG_NAME)
    json_handler.setLevel(logging.DEBUG)
    logger.addHandler(json_handler)
    logger.setLevel(logging.DEBUG)


def get_log_directory() -> Path:
    """Return the directory holding the slicer log files."""
    if _log_dir is None:
        configure_logging()
    assert _log_dir is not None
    return _log_dir


def get_log_file_paths() -> tuple[Path, Path]:
    """Return ``(text_log, jsonl_log)`` paths."""
    directory = get_log_directory()
    return directory / TEXT_LOG_NAME, directory / JSON_LOG_NAME


__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "JsonlHandler",
    "LOG_DIR_ENV",
    "LOG_LEVEL_ENV",
    "configure_logging",
    "get_log_directory",
    "get_log_file_paths",
    "logger",
]
