"""Fire-and-forget notification requests.

The engine never delivers anything itself. It hands a NotificationRequest to a
dispatcher after the unit of work that produced it has committed; delivery
failures are logged and never reach the caller.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession

from periodization.config.settings import get_settings
from periodization.core.logging import get_logger

logger = get_logger(__name__)

PROGRAM_ASSIGNED = "program.assigned"
PHASE_STARTED = "program.phase_started"
PROGRAM_COMPLETED = "program.completed"


@dataclass(frozen=True)
class NotificationRequest:
    recipient_id: int
    template_key: str
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationDispatcher(Protocol):
    async def send(self, request: NotificationRequest) -> None:
        ...


class LoggingNotificationDispatcher:
    """Default dispatcher: records the request for the delivery pipeline to pick up."""

    async def send(self, request: NotificationRequest) -> None:
        logger.info(
            "notification_requested",
            recipient_id=request.recipient_id,
            template_key=request.template_key,
            payload=request.payload,
        )


class WebhookNotificationDispatcher:
    """Posts each request as JSON to the notification service."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    async def send(self, request: NotificationRequest) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.url,
                json={
                    "recipient_id": request.recipient_id,
                    "template_key": request.template_key,
                    "payload": request.payload,
                },
            )
            response.raise_for_status()


_background_tasks: set[asyncio.Task] = set()


async def _deliver(dispatcher: NotificationDispatcher, request: NotificationRequest) -> None:
    try:
        await dispatcher.send(request)
    except Exception as e:
        logger.warning(
            "notification_dispatch_failed",
            recipient_id=request.recipient_id,
            template_key=request.template_key,
            error=str(e),
        )


class NotificationOutbox:
    """Collects requests raised during one unit of work.

    ``release`` hands them to the dispatcher once the session commits; a
    rollback drops them.
    """

    def __init__(self, dispatcher: NotificationDispatcher):
        self._dispatcher = dispatcher
        self._pending: list[NotificationRequest] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def pending(self) -> list[NotificationRequest]:
        return list(self._pending)

    def enqueue(self, request: NotificationRequest) -> None:
        self._loop = asyncio.get_running_loop()
        self._pending.append(request)

    def discard(self) -> None:
        self._pending.clear()

    def flush(self) -> None:
        pending, self._pending = self._pending, []
        if not pending:
            return
        loop = self._loop or asyncio.get_running_loop()
        for request in pending:
            task = loop.create_task(_deliver(self._dispatcher, request))
            _background_tasks.add(task)
            task.add_done_callback(_background_tasks.discard)

    def release(self, session: AsyncSession) -> None:
        """Flush now if the work is committed, otherwise when the session commits."""
        if not self._pending:
            return
        if not session.in_transaction():
            self.flush()
            return
        sync_session = session.sync_session
        loop = self._loop or asyncio.get_running_loop()
        settled = False

        def detach() -> None:
            for identifier, fn in (("after_commit", on_commit), ("after_rollback", on_rollback)):
                if event.contains(sync_session, identifier, fn):
                    event.remove(sync_session, identifier, fn)

        def settle(outcome) -> None:
            nonlocal settled
            if settled:
                return
            settled = True
            # Listeners cannot be removed while the session is dispatching to them
            loop.call_soon(detach)
            outcome()

        def on_commit(s) -> None:
            settle(self.flush)

        def on_rollback(s) -> None:
            settle(self.discard)

        event.listen(sync_session, "after_commit", on_commit)
        event.listen(sync_session, "after_rollback", on_rollback)


def get_notification_dispatcher() -> NotificationDispatcher:
    settings = get_settings()
    if settings.notification_webhook_url:
        return WebhookNotificationDispatcher(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout,
        )
    return LoggingNotificationDispatcher()
