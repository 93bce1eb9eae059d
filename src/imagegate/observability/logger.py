"""Structured JSON logging for imagegate.

Each record becomes one JSON line. Fields passed through
``extra={"extra_fields": {...}}`` are merged into the object after going
through :func:`imagegate.utils.redact`, so an inline image or a request
signature that reaches a log call is written as a placeholder.

When a record carries an :class:`~imagegate.errors.ImagegateError`, its
``code`` and ``context`` are lifted into ``error_code`` and
``error_context`` so failures can be filtered without parsing tracebacks.

Typical structured output::

    {"ts": "2026-10-18T12:00:00.123456+00:00", "level": "WARNING",
     "logger": "imagegate.pipeline", "message": "Image batch failed",
     "code": "UPLOAD_ERROR", "index": 1, "uploaded": 1}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from imagegate.errors import ErrorCode, ImagegateError
from imagegate.utils.redact import redact


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line, redacted JSON objects.

    Parameters
    ----------
    secret:
        Optional API secret scrubbed from every field, including the
        message itself.
    """

    def __init__(self, secret: str | None = None) -> None:
        super().__init__()
        self._secret = secret

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            fields.update(extra_fields)

        exc = record.exc_info[1] if record.exc_info else None
        if isinstance(exc, ImagegateError):
            code = exc.code
            fields["error_code"] = code.value if isinstance(code, ErrorCode) else str(code)
            fields["error_context"] = dict(exc.context)

        entry = redact(fields, self._secret)
        if exc is not None:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(entry, default=str)


_configured_loggers: set[str] = set()


def get_logger(
    name: str = "imagegate",
    *,
    level: int | str = logging.DEBUG,
    stream: Any | None = None,
    secret: str | None = None,
) -> logging.Logger:
    """Return the structured logger called *name*, configuring it once.

    The first call for a name attaches a single stream handler with a
    :class:`StructuredFormatter` and stops propagation to the root logger.
    Later calls return the same logger untouched, whatever arguments they
    pass.

    Parameters
    ----------
    name:
        Logger name. Pipeline stages use ``"imagegate.pipeline"``, the
        store client ``"imagegate.storage"``.
    level:
        Minimum level, as an ``int`` or a case-insensitive name.
    stream:
        Handler stream, ``sys.stderr`` by default.
    secret:
        Passed to the formatter for scrubbing.
    """
    logger = logging.getLogger(name)
    if name in _configured_loggers:
        return logger

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter(secret))
    logger.addHandler(handler)
    logger.propagate = False

    _configured_loggers.add(name)
    return logger
