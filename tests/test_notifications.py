"""Tests for the notification outbox: requests leave only after a commit."""
import pytest
from conftest import RecordingDispatcher, drain_notifications

from periodization.services.notifications import (
    PROGRAM_COMPLETED,
    LoggingNotificationDispatcher,
    NotificationOutbox,
    NotificationRequest,
)


class FailingDispatcher:
    def __init__(self):
        self.attempts = 0

    async def send(self, request: NotificationRequest) -> None:
        self.attempts += 1
        raise ConnectionError("notification service unavailable")


def completed_request(user_id: int = 1) -> NotificationRequest:
    return NotificationRequest(recipient_id=user_id, template_key=PROGRAM_COMPLETED, payload={"subscription_id": 9})


def listener_counts(session) -> tuple[int, int]:
    dispatch = session.sync_session.dispatch
    return len(dispatch.after_commit), len(dispatch.after_rollback)


class TestNotificationOutbox:
    """Test NotificationOutbox.release."""

    @pytest.mark.asyncio
    async def test_release_outside_transaction_sends_immediately(self, async_db_session):
        dispatcher = RecordingDispatcher()
        outbox = NotificationOutbox(dispatcher)
        outbox.enqueue(completed_request())

        outbox.release(async_db_session)
        await drain_notifications()

        assert dispatcher.keys() == [PROGRAM_COMPLETED]
        assert outbox.pending == []

    @pytest.mark.asyncio
    async def test_release_waits_for_commit(self, async_db_session):
        dispatcher = RecordingDispatcher()
        outbox = NotificationOutbox(dispatcher)

        async with async_db_session.begin():
            outbox.enqueue(completed_request())
            outbox.release(async_db_session)
            await drain_notifications()
            assert dispatcher.sent == []

        await drain_notifications()
        assert dispatcher.keys() == [PROGRAM_COMPLETED]

    @pytest.mark.asyncio
    async def test_rollback_discards(self, async_db_session):
        dispatcher = RecordingDispatcher()
        outbox = NotificationOutbox(dispatcher)

        with pytest.raises(RuntimeError):
            async with async_db_session.begin():
                outbox.enqueue(completed_request())
                outbox.release(async_db_session)
                raise RuntimeError("unit of work failed")
        await drain_notifications()

        assert dispatcher.sent == []
        assert outbox.pending == []

    @pytest.mark.asyncio
    async def test_listeners_are_detached_after_commit(self, async_db_session):
        dispatcher = RecordingDispatcher()
        outbox = NotificationOutbox(dispatcher)
        before = listener_counts(async_db_session)

        async with async_db_session.begin():
            outbox.enqueue(completed_request())
            outbox.release(async_db_session)
        await drain_notifications()

        assert listener_counts(async_db_session) == before

        # A later rollback must not reach this outbox
        outbox.enqueue(completed_request(user_id=2))
        await async_db_session.begin()
        await async_db_session.rollback()
        assert [r.recipient_id for r in outbox.pending] == [2]

    @pytest.mark.asyncio
    async def test_listeners_are_detached_after_rollback(self, async_db_session):
        outbox = NotificationOutbox(RecordingDispatcher())
        before = listener_counts(async_db_session)

        with pytest.raises(RuntimeError):
            async with async_db_session.begin():
                outbox.enqueue(completed_request())
                outbox.release(async_db_session)
                raise RuntimeError("unit of work failed")
        await drain_notifications()

        assert listener_counts(async_db_session) == before

    @pytest.mark.asyncio
    async def test_release_with_nothing_pending_is_a_no_op(self, async_db_session):
        dispatcher = RecordingDispatcher()
        outbox = NotificationOutbox(dispatcher)

        outbox.release(async_db_session)
        await drain_notifications()

        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_delivery_failure_does_not_propagate(self):
        dispatcher = FailingDispatcher()
        outbox = NotificationOutbox(dispatcher)
        outbox.enqueue(completed_request())
        outbox.enqueue(completed_request(user_id=2))

        outbox.flush()
        await drain_notifications()

        assert dispatcher.attempts == 2


class TestLoggingNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_send_logs_only(self):
        await LoggingNotificationDispatcher().send(completed_request())
