"""Structured logging configuration with structlog.

Every event carries the service name and environment. Values under
credential-like keys are masked before rendering so a stray
`logger.info(..., password=...)` never reaches the log sink.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

import structlog

from cpms.config import Settings

SERVICE_NAME = "cpms-api"

_SENSITIVE_KEYS = frozenset({"password", "new_password", "confirm_password", "password_hash", "token", "authorization"})
_MASK = "***"


def redact_sensitive(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:  # noqa: ANN401
    """Mask credential-like values in the event dict."""
    for key in _SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = _MASK
    return event_dict


def setup_logging(settings: Settings) -> None:
    """Configure structlog: JSON lines when log_format is "json", console output otherwise."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.dict_tracebacks
            if settings.log_format == "json"
            else structlog.processors.format_exc_info,
            redact_sensitive,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME, environment=settings.environment)

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)
    # SQL echo is noisy at INFO and can include bound parameters
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
