"""
Structured logging helpers for scraping jobs and extraction providers.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    Fields with a None value are dropped.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **{key: value for key, value in fields.items() if value is not None}}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True), exc_info=exc_info)


def truncate_error(exc: BaseException, *, limit: int = 2000) -> str:
    """
    Render an exception as '<ExcType>: <message>' capped at `limit` characters.
    """

    return f"{type(exc).__name__}: {exc}"[:limit]
