"""Structured logging configuration using structlog.

Event names are snake_case and carry their data as keyword fields::

    logger = get_logger(__name__)
    logger.info("webhook_dispatch_completed", event_type="contact.created", delivered=2)

Request handlers and workers bind ``request_id`` / ``user_id`` through
:func:`bind_request_context`; every log line emitted while handling that
request (webhook dispatch included) carries them.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.typing import EventDict, Processor

from crmhub.core.config import get_settings

settings = get_settings()

_SENSITIVE_KEYS = frozenset({"authorization", "token", "access_token", "password", "secret"})

# Third-party loggers that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def add_app_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to log entries."""
    event_dict["app"] = settings.app_name
    event_dict["env"] = settings.app_env
    return event_dict


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask bearer tokens and secrets passed as log fields."""
    for key in event_dict.keys() & _SENSITIVE_KEYS:
        event_dict[key] = "***"
    return event_dict


def setup_logging(log_level: Optional[str] = None, json_format: Optional[bool] = None) -> None:
    """Configure structlog and route stdlib loggers through the same renderer.

    Args:
        log_level: Minimum level (default from ``LOG_LEVEL``)
        json_format: JSON lines instead of console output (default: not ``DEBUG``)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_format is None:
        json_format = not settings.debug

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
        redact_sensitive_fields,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: Processor
    if json_format:
        shared_processors.append(structlog.processors.dict_tracebacks)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
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

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_request_context(**values: Any) -> None:
    """Attach fields (request_id, user_id, ...) to all logs in the current context."""
    structlog.contextvars.bind_contextvars(
        **{key: str(value) for key, value in values.items() if value is not None}
    )


def clear_request_context() -> None:
    """Drop fields bound with :func:`bind_request_context`."""
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


# Initialize logging on module import
setup_logging()
