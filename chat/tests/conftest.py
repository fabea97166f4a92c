"""Shared fixtures for chat service tests."""

from unittest.mock import AsyncMock, MagicMock

import fakeredis
import pytest

from chat.src.service import ChatService
from conversation.src.store import TRANSIENT_ERRORS, ConversationStore
from shared.retry import RetryPolicy


@pytest.fixture
def redis_client():
    """An isolated in-memory Redis."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def store(redis_client):
    return ConversationStore(
        redis_client,
        retry=RetryPolicy(attempts=3, initial_backoff=0, retry_on=TRANSIENT_ERRORS),
    )


@pytest.fixture
def resolver():
    """Search resolver returning two fixed URLs."""
    mock = MagicMock()
    mock.resolve = AsyncMock(return_value=["https://a.com", "https://b.com"])
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def orchestrator():
    """Orchestrator that returns text for every URL."""
    mock = MagicMock()
    mock.acquire_context = AsyncMock(
        side_effect=lambda urls: [f"text of {url}" for url in urls]
    )
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def completion():
    mock = MagicMock()
    mock.complete = AsyncMock(return_value="The answer.")
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def service(resolver, orchestrator, store, completion):
    return ChatService(
        resolver=resolver,
        orchestrator=orchestrator,
        store=store,
        completion=completion,
    )
