"""
Structured logging setup.

Core and db modules log through structlog with an event name plus key/value
context:

    logger = get_logger(__name__)
    logger.info("content_created", content_id=42, user_id=7)

Services and routes use plain ``logging.getLogger(__name__)``; their records
go through the same root handler and formatter, so both kinds of output
share one format (JSON in production, colored console in development).
"""

import logging
import re
import sys
from typing import Any

import structlog

from kbase.core.config import settings

SECRET_KEYS = ("token", "password", "secret", "api_key", "database_url", "authorization")
CREDENTIALS_IN_URL = re.compile(r"://[^:/@\s]+:[^@\s]+@")


def redact_secrets(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Hide secrets by key name and strip credentials from URLs."""
    for key in list(event_dict.keys()):
        value = event_dict[key]
        if any(secret in key.lower() for secret in SECRET_KEYS):
            event_dict[key] = "***REDACTED***"
        elif isinstance(value, str):
            event_dict[key] = CREDENTIALS_IN_URL.sub("://***@", value)
    return event_dict


def setup_logging() -> None:
    """Configure stdlib logging and structlog. Safe to call more than once."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        redact_secrets,
    ]

    if settings.LOG_FORMAT == "json":
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL)

    # Chatty third-party loggers
    for noisy in ("urllib3", "googleapiclient.discovery_cache", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to the module name."""
    return structlog.get_logger(name)
