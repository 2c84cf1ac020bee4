"""Tests for post-commit webhook scheduling."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import BackgroundTasks
from kombu.exceptions import OperationalError
from pytest_mock import MockerFixture

from crmhub.storage.database.webhook_models import WebhookEvent
from crmhub.webhooks.publisher import WebhookEventPublisher, run_webhook_dispatch

USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")


def test_publish_schedules_background_task() -> None:
    """Test the default backend queues a background dispatch."""
    background_tasks = BackgroundTasks()
    publisher = WebhookEventPublisher(background_tasks, backend="background")

    publisher.publish(WebhookEvent.CONTACT_CREATED, USER_ID, {"name": "Ada"})

    assert len(background_tasks.tasks) == 1
    task = background_tasks.tasks[0]
    assert task.func is run_webhook_dispatch
    assert task.args == ("contact.created", str(USER_ID), {"name": "Ada"})


def test_publish_sends_to_celery(mocker: MockerFixture) -> None:
    """Test the celery backend enqueues a task instead."""
    delay = mocker.patch("crmhub.tasks.webhook_tasks.dispatch_webhook_event_task.delay")
    background_tasks = BackgroundTasks()
    publisher = WebhookEventPublisher(background_tasks, backend="celery")

    publisher.publish(WebhookEvent.ACTIVITY_CREATED, USER_ID, {"action": "Called"})

    delay.assert_called_once_with("activity.created", str(USER_ID), {"action": "Called"})
    assert background_tasks.tasks == []


@pytest.mark.asyncio
async def test_run_webhook_dispatch_uses_fresh_session(mocker: MockerFixture) -> None:
    """Test scheduled dispatches open their own session."""
    session = MagicMock()
    session_factory = MagicMock()
    session_factory.return_value.__aenter__ = AsyncMock(return_value=session)
    session_factory.return_value.__aexit__ = AsyncMock(return_value=False)
    mocker.patch("crmhub.webhooks.publisher.AsyncSessionLocal", session_factory)

    dispatcher_cls = mocker.patch("crmhub.webhooks.publisher.WebhookDispatcher")
    dispatcher_cls.return_value.dispatch = AsyncMock()

    await run_webhook_dispatch("contact.updated", str(USER_ID), {"name": "Ada"})

    dispatcher_cls.assert_called_once_with(session)
    dispatcher_cls.return_value.dispatch.assert_awaited_once_with(
        "contact.updated", str(USER_ID), {"name": "Ada"}
    )
    session_factory.return_value.__aexit__.assert_awaited_once()


def test_celery_task_runs_dispatch(mocker: MockerFixture) -> None:
    """Test the worker task dispatches and releases pooled connections."""
    from crmhub.tasks.webhook_tasks import dispatch_webhook_event_task

    run = mocker.patch("crmhub.tasks.webhook_tasks.run_webhook_dispatch", new_callable=AsyncMock)
    engine = mocker.patch("crmhub.tasks.webhook_tasks.async_engine")
    engine.dispose = AsyncMock()

    result = dispatch_webhook_event_task("contact.created", str(USER_ID), {"name": "Ada"})

    assert result == {"status": "completed", "event": "contact.created"}
    run.assert_awaited_once_with("contact.created", str(USER_ID), {"name": "Ada"})
    engine.dispose.assert_awaited_once()


def test_celery_task_reports_failure(mocker: MockerFixture) -> None:
    """Test unexpected errors are reported instead of retried."""
    from crmhub.tasks.webhook_tasks import dispatch_webhook_event_task

    mocker.patch(
        "crmhub.tasks.webhook_tasks.run_webhook_dispatch",
        new_callable=AsyncMock,
        side_effect=RuntimeError("boom"),
    )
    engine = mocker.patch("crmhub.tasks.webhook_tasks.async_engine")
    engine.dispose = AsyncMock()

    result = dispatch_webhook_event_task("contact.created", str(USER_ID), {})

    assert result["status"] == "failed"
    assert result["error"] == "boom"
    engine.dispose.assert_awaited_once()


def test_publish_contains_broker_errors(mocker: MockerFixture) -> None:
    """Test an unreachable broker is logged instead of raised."""
    mocker.patch(
        "crmhub.tasks.webhook_tasks.dispatch_webhook_event_task.delay",
        side_effect=OperationalError("broker down"),
    )
    logger = mocker.patch("crmhub.webhooks.publisher.logger")
    publisher = WebhookEventPublisher(BackgroundTasks(), backend="celery")

    publisher.publish(WebhookEvent.CONTACT_CREATED, USER_ID, {"name": "Ada"})

    logger.error.assert_called_once()
    assert logger.error.call_args.args == ("webhook_dispatch_schedule_failed",)
    assert logger.error.call_args.kwargs["event_type"] == "contact.created"
    logger.debug.assert_not_called()


def test_publish_logs_with_configured_logger() -> None:
    """Test scheduling goes through the structlog logger without errors."""
    background_tasks = BackgroundTasks()

    WebhookEventPublisher(background_tasks, backend="background").publish(
        WebhookEvent.CONTACT_UPDATED, USER_ID, {"name": "Ada"}
    )

    assert len(background_tasks.tasks) == 1
