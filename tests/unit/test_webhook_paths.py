"""Tests for webhook path normalization."""

import pytest

from crmhub.core.exceptions import InvalidWebhookPathException
from crmhub.webhooks.dispatcher import (
    build_target_path,
    is_full_url,
    normalize_webhook_path,
    utc_timestamp,
)


@pytest.mark.parametrize(
    ("stored", "expected"),
    [
        ("/webhook/abc", "/webhook/abc"),
        ("webhook/abc", "/webhook/abc"),
        ("  webhook/abc  ", "/webhook/abc"),
        ("/webhook/abc?source=crm", "/webhook/abc?source=crm"),
    ],
)
def test_normalize_plain_paths(stored: str, expected: str) -> None:
    """Test a single leading slash is ensured on stored paths."""
    assert normalize_webhook_path(stored) == expected


def test_normalize_is_idempotent() -> None:
    """Test normalizing an already normalized path changes nothing."""
    once = normalize_webhook_path("webhook/abc")
    assert normalize_webhook_path(once) == once


@pytest.mark.parametrize(
    ("stored", "expected"),
    [
        ("https://n8n.example.com/webhook/abc", "/webhook/abc"),
        ("http://n8n.example.com:5678/webhook-test/abc", "/webhook-test/abc"),
        ("https://n8n.example.com/webhook/abc?x=1&y=2", "/webhook/abc?x=1&y=2"),
        ("https://n8n.example.com/webhook/abc?x=1#frag", "/webhook/abc?x=1#frag"),
        ("HTTPS://n8n.example.com/webhook/abc", "/webhook/abc"),
        ("https://n8n.example.com", "/"),
    ],
)
def test_normalize_full_urls(stored: str, expected: str) -> None:
    """Test full URLs are reduced to path, query and fragment."""
    assert normalize_webhook_path(stored) == expected


@pytest.mark.parametrize("stored", [None, "", "   "])
def test_normalize_rejects_empty(stored: str | None) -> None:
    """Test empty values are configuration errors."""
    with pytest.raises(InvalidWebhookPathException):
        normalize_webhook_path(stored)


@pytest.mark.parametrize("stored", ["http://", "https:///webhook/abc", "http://[::1/webhook"])
def test_normalize_rejects_unparseable_urls(stored: str) -> None:
    """Test URLs without a host are configuration errors."""
    with pytest.raises(InvalidWebhookPathException):
        normalize_webhook_path(stored)


def test_is_full_url() -> None:
    """Test full URL detection."""
    assert is_full_url("https://n8n.example.com/webhook/abc")
    assert is_full_url("http://localhost/webhook")
    assert not is_full_url("/webhook/abc")
    assert not is_full_url("httpbin/webhook")
    assert not is_full_url(None)


def test_build_target_path() -> None:
    """Test the routing prefix is prepended exactly once."""
    assert build_target_path("/webhook/abc", "/api/n8n") == "/api/n8n/webhook/abc"
    assert build_target_path("/webhook/abc", "/api/n8n/") == "/api/n8n/webhook/abc"


def test_utc_timestamp_format() -> None:
    """Test dispatch timestamps are ISO-8601 UTC with milliseconds."""
    timestamp = utc_timestamp()

    assert timestamp.endswith("Z")
    assert len(timestamp) == len("2024-01-01T00:00:00.000Z")
