"""
Structured log events.

Every AI failure, categorization error and media group transition is logged
through ``log_event`` so handlers can pick the event name and fields off the
record instead of parsing the message.
"""

import logging
from typing import Any


def _format_value(value: Any) -> str:
    text = str(value)
    if " " in text or not text:
        return repr(text)
    return text


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log ``event`` with ``fields`` attached to the record.

    The message reads ``event key=value ...``; the record carries
    ``record.event`` and ``record.fields`` for structured handlers.
    """
    if not logger.isEnabledFor(level):
        return
    parts = [event] + [f"{key}={_format_value(value)}" for key, value in fields.items()]
    logger.log(level, " ".join(parts), extra={"event": event, "fields": dict(fields)})
