"""Tests for logging helpers."""

import structlog

from crmhub.core.logging import (
    add_app_context,
    bind_request_context,
    clear_request_context,
    get_logger,
    redact_sensitive_fields,
)


def test_redact_sensitive_fields() -> None:
    """Test tokens and secrets never reach the log output."""
    event_dict = {"event": "auth_failed", "token": "eyJhbGciOi", "user_id": "abc"}

    result = redact_sensitive_fields(None, "info", event_dict)

    assert result["token"] == "***"
    assert result["user_id"] == "abc"


def test_add_app_context() -> None:
    """Test app name and environment are attached."""
    result = add_app_context(None, "info", {"event": "started"})

    assert result["app"] == "crmhub"
    assert "env" in result


def test_bind_request_context() -> None:
    """Test bound fields are stringified and None values dropped."""
    clear_request_context()
    try:
        bind_request_context(request_id="req-1", user_id=42, task_id=None)

        assert structlog.contextvars.get_contextvars() == {"request_id": "req-1", "user_id": "42"}
    finally:
        clear_request_context()

    assert structlog.contextvars.get_contextvars() == {}


def test_get_logger() -> None:
    """Test a usable logger is returned."""
    logger = get_logger(__name__)

    logger.info("test_event", key="value")
