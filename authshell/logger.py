"""
Structured JSON Logging Module.

Every record is written as one JSON object.  The ``event`` field that
services pass through ``extra`` (``LOGIN``, ``ROUTE``, ``AUDIT``, ...) is
lifted to the top level so a log file can be filtered by auth event;
any other ``extra`` fields are kept, with their JSON types, under
``context``.

Usage::

    log = get_logger("router")
    log.info("Routing outcome %s.", outcome, extra={"event": "ROUTE", "outcome": outcome})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO

_ROOT_NAME: str = "authshell"

_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
    ).__dict__.keys()
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Formats a record as ``{timestamp, level, logger, event, message, context, exception}``."""

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": context.pop("event", None),
            "message": record.getMessage(),
        }
        if context:
            entry["context"] = context

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        # Enum members and datetimes in extra fall back to str().
        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """Injectable logger writing JSON lines to stdout and a rotating file.

    Parameters
    ----------
    name:
        Component name; nested under the ``authshell`` logger namespace.
    level:
        Minimum level; defaults to ``LOG_LEVEL`` from configuration.
    stream:
        Console stream, ``sys.stdout`` by default.
    log_file:
        Rotating log file; defaults to ``LOG_FILE`` from configuration.
    """

    def __init__(
        self,
        name: str = _ROOT_NAME,
        level: Optional[int] = None,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
    ) -> None:
        from authshell.config import get_config
        cfg = get_config()

        qualified = name if name.startswith(_ROOT_NAME) else f"{_ROOT_NAME}.{name}"
        resolved_level = level if level is not None else getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO)

        self._logger: logging.Logger = logging.getLogger(qualified)
        self._logger.setLevel(resolved_level)
        self._logger.propagate = False

        # Handlers are attached once per component name.
        if self._logger.handlers:
            return

        formatter = JSONFormatter()
        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        path = Path(log_file or cfg.LOG_FILE)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            rotating = RotatingFileHandler(
                filename=str(path),
                maxBytes=cfg.LOG_MAX_BYTES,
                backupCount=cfg.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Log file '%s' unavailable (%s); logging to console only.", path, exc,
                extra={"event": "LOG_FILE_UNAVAILABLE"},
            )
        else:
            rotating.setFormatter(formatter)
            self._logger.addHandler(rotating)

    @property
    def name(self) -> str:
        return self._logger.name

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.critical(msg, *args, **kwargs)


def get_logger(name: str = _ROOT_NAME) -> StructuredLogger:
    """Return the ``StructuredLogger`` for component *name*."""
    return StructuredLogger(name=name)
