"""Shared fixtures for conversation store tests."""

import fakeredis
import pytest

from conversation.src.models import Message, Role
from conversation.src.store import TRANSIENT_ERRORS, ConversationStore
from shared.retry import RetryPolicy


@pytest.fixture
def redis_client():
    """An isolated in-memory Redis."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def fast_retry():
    """Store retry policy without backoff sleeps."""
    return RetryPolicy(attempts=3, initial_backoff=0, retry_on=TRANSIENT_ERRORS)


@pytest.fixture
def store(redis_client, fast_retry):
    return ConversationStore(redis_client, max_messages=10, retry=fast_retry)


@pytest.fixture
def make_messages():
    """Build alternating user/assistant messages m1..mN."""

    def _make(count: int, start: int = 1) -> list[Message]:
        return [
            Message(
                role=Role.USER if i % 2 else Role.ASSISTANT,
                content=f"m{i}",
            )
            for i in range(start, start + count)
        ]

    return _make
