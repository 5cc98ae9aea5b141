"""
Structured logging for the fee engine.

Every diagnostic is a snake_case event name plus key/value context, e.g.

    logger = get_logger(__name__)
    logger.warning("fx_conversion_skipped", client_id="C001", source="GBP")

LOG_FORMAT=json (default) renders one JSON object per line; anything else
renders the human-readable console format. Output goes to stderr so CLI
reports on stdout stay clean.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _stringify_values(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Render Decimal, date and enum context values as plain strings."""
    for key, value in list(event_dict.items()):
        if isinstance(value, (str, int, float, bool)) or value is None:
            continue
        if isinstance(value, (dict, list, tuple)):
            continue
        event_dict[key] = getattr(value, "value", None) or str(value)
    return event_dict


def configure_structlog() -> None:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _stringify_values,
    ]
    if LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> Any:
    """Return a structured logger bound with the module name."""
    return structlog.get_logger(name).bind(logger=name)
