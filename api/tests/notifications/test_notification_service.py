"""Tests for NotificationService with a mocked session and Redis."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import orjson
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.notifications.models import NotificationType
from src.notifications.service import NotificationService


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.aexecute = AsyncMock()
    return session


@pytest.fixture
def redis() -> AsyncMock:
    redis = AsyncMock()
    redis.get.return_value = None
    return redis


class TestNotify:
    """Tests for creating notifications."""

    @pytest.mark.asyncio
    async def test_persists_and_publishes(self, session: MagicMock, redis: AsyncMock) -> None:
        service = NotificationService(session, "learnpath_test", redis=redis)
        user_id = uuid4()

        notification = await service.notify(
            user_id=user_id,
            notification_type=NotificationType.CERTIFICATE_EARNED,
            title="Certificate Earned!",
            message="Well done",
            link="https://learn.example.com/certificates/1",
        )

        assert notification.is_read is False
        assert session.aexecute.await_count == 2
        redis.delete.assert_awaited_once_with(f"notifications:unread:{user_id}")

        channel, payload = redis.publish.await_args.args
        assert channel == f"notifications:user:{user_id}"
        data = orjson.loads(payload)
        assert data["type"] == "notification"
        assert data["data"]["title"] == "Certificate Earned!"
        assert data["data"]["type"] == "certificate_earned"

    @pytest.mark.asyncio
    async def test_publish_failure_is_not_raised(
        self, session: MagicMock, redis: AsyncMock
    ) -> None:
        redis.publish.side_effect = RedisConnectionError("gone")
        service = NotificationService(session, "learnpath_test", redis=redis)

        notification = await service.notify(
            user_id=uuid4(),
            notification_type=NotificationType.SYSTEM,
            title="Hello",
            message="World",
        )

        assert notification.title == "Hello"

    @pytest.mark.asyncio
    async def test_works_without_redis(self, session: MagicMock) -> None:
        service = NotificationService(session, "learnpath_test")

        await service.notify(
            user_id=uuid4(),
            notification_type=NotificationType.LEVEL_UNLOCKED,
            title="New Level Unlocked!",
            message="Intermediate",
        )

        assert session.aexecute.await_count == 2


class TestUnreadCount:
    @pytest.mark.asyncio
    async def test_cached_value_wins(self, session: MagicMock, redis: AsyncMock) -> None:
        redis.get.return_value = "4"
        service = NotificationService(session, "learnpath_test", redis=redis)

        assert await service.get_unread_count(uuid4()) == 4
        session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_negative_counter_is_clamped(
        self, session: MagicMock, redis: AsyncMock
    ) -> None:
        result = MagicMock()
        result.one.return_value = MagicMock(count=-2)
        session.aexecute.return_value = result
        service = NotificationService(session, "learnpath_test", redis=redis)

        assert await service.get_unread_count(uuid4()) == 0
        redis.setex.assert_awaited_once()
