from __future__ import annotations

import logging
from typing import Any, Dict

RESERVED_LOG_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "asctime",
        "taskName",
    }
)


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: v for k, v in fields.items() if k not in RESERVED_LOG_KEYS and v is not None
    }


def log_event(
    event: str,
    logger: logging.Logger | None = None,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """
    Minimal structured logging helper.
    - Passes fields as ``extra`` so LogfmtFormatter can render them.
    - Drops reserved LogRecord attributes and None values.
    """
    log = logger or logging.getLogger("polarion_client.observability")
    log.log(level, event, extra=_clean_fields(fields))


__all__ = ["log_event", "RESERVED_LOG_KEYS"]
