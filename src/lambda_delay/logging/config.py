"""Logging configuration for the lambda-delay tools."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, TextIO

__all__ = ["JsonFormatter", "setup_logging"]

_RESERVED_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_MARKER = "_lambda_delay_handler"


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects.

    Attributes passed through ``extra`` are merged into the payload so that
    structured context survives alongside the message.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RESERVED_ATTRIBUTES or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, sort_keys=False)


def _resolve_level(raw: Any) -> int:
    if isinstance(raw, int):
        return raw
    name = str(raw or "info").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{raw}'")
    return level


def _resolve_stream(output: str) -> logging.Handler:
    target = (output or "stderr").strip()
    if target == "stdout":
        return logging.StreamHandler(sys.stdout)
    if target == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(target).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, encoding="utf8")


def setup_logging(
    config: Mapping[str, Any] | None = None,
    *,
    stream: TextIO | None = None,
) -> logging.Handler:
    """Install a single handler on the ``lambda_delay``/``lambda_core`` loggers.

    ``config`` is either the whole CLI configuration (with a ``logging``
    table) or the logging table itself.  Recognised keys are ``level``,
    ``output`` (``stdout``, ``stderr`` or a path) and ``format`` (``json``
    or ``text``).  Calling the function again replaces the handler.
    """

    section: Mapping[str, Any] = {}
    if config:
        nested = config.get("logging")
        section = nested if isinstance(nested, Mapping) else config

    level = _resolve_level(section.get("level", "info"))
    if stream is not None:
        handler: logging.Handler = logging.StreamHandler(stream)
    else:
        handler = _resolve_stream(str(section.get("output", "stderr")))
    if str(section.get("format", "json")).lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)

    for name in ("lambda_delay", "lambda_core"):
        logger = logging.getLogger(name)
        for existing in list(logger.handlers):
            if getattr(existing, _HANDLER_MARKER, False):
                logger.removeHandler(existing)
                existing.close()
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
    return handler
