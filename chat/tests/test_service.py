"""Tests for the chat answer pipeline."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from acquirer.src.browser import BrowserPool
from acquirer.src.cache import ContentCache
from acquirer.src.orchestrator import AcquisitionOrchestrator
from chat.src.models import ChatAnswer
from chat.src.service import ChatService, build_prompt
from conversation.src.models import Message, Role
from shared.errors import CompletionError


class TestBuildPrompt:

    def test_without_context(self):
        assert build_prompt("hello", "") == "hello"

    def test_with_context(self):
        prompt = build_prompt("Who won?", "Source: https://a.com\nscores")

        assert prompt == (
            "Context from web search:\nSource: https://a.com\nscores\n\nQuestion: Who won?"
        )


class TestGatherContext:
    """Tests for choosing and fetching web context."""

    @pytest.mark.asyncio
    async def test_plain_message_skips_web(self, service, resolver, orchestrator):
        context, cited = await service.gather_context("hello there")

        assert (context, cited) == ("", [])
        resolver.resolve.assert_not_awaited()
        orchestrator.acquire_context.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_trigger_word_searches(self, service, resolver, orchestrator):
        context, cited = await service.gather_context("What is the latest Python release?")

        resolver.resolve.assert_awaited_once_with("What is the latest Python release?")
        orchestrator.acquire_context.assert_awaited_once_with(["https://a.com", "https://b.com"])
        assert cited == ["https://a.com", "https://b.com"]
        assert context == (
            "Source: https://a.com\ntext of https://a.com\n\n"
            "Source: https://b.com\ntext of https://b.com"
        )

    @pytest.mark.asyncio
    async def test_explicit_url_bypasses_search(self, service, resolver, orchestrator):
        _, cited = await service.gather_context("Summarize https://example.com/post please")

        resolver.resolve.assert_not_awaited()
        orchestrator.acquire_context.assert_awaited_once_with(["https://example.com/post"])
        assert cited == ["https://example.com/post"]

    @pytest.mark.asyncio
    async def test_cites_only_urls_with_content(self, service, orchestrator):
        orchestrator.acquire_context = AsyncMock(return_value=["", "text of b"])

        context, cited = await service.gather_context("what happened today")

        assert cited == ["https://b.com"]
        assert "https://a.com" not in context

    @pytest.mark.asyncio
    async def test_no_search_results(self, service, resolver, orchestrator):
        resolver.resolve = AsyncMock(return_value=[])

        assert await service.gather_context("what is new") == ("", [])
        orchestrator.acquire_context.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_resolver(self, service, orchestrator):
        service.resolver = None

        assert await service.gather_context("what is new") == ("", [])
        orchestrator.acquire_context.assert_not_awaited()


class TestAnswer:
    """Tests for the full answer flow."""

    @pytest.mark.asyncio
    async def test_answer_records_exchange(self, service, store):
        result = await service.answer("s1", "What is the weather today?")

        assert isinstance(result, ChatAnswer)
        assert result.answer == "The answer."
        assert result.urls == ["https://a.com", "https://b.com"]

        history = await store.history("s1")
        assert history == [
            Message(role=Role.USER, content="What is the weather today?"),
            Message(
                role=Role.ASSISTANT,
                content="The answer.",
                sources=["https://a.com", "https://b.com"],
            ),
        ]

    @pytest.mark.asyncio
    async def test_prompt_carries_context(self, service, completion):
        await service.answer("s1", "What is the weather today?")

        history, prompt = completion.complete.await_args.args
        assert history == []
        assert prompt.startswith("Context from web search:\nSource: https://a.com\n")
        assert prompt.endswith("\n\nQuestion: What is the weather today?")

    @pytest.mark.asyncio
    async def test_history_is_passed_to_completion(self, service, store, completion):
        await service.answer("s1", "hello")
        await service.answer("s1", "and again")

        history, prompt = completion.complete.await_args.args
        assert [m.content for m in history] == ["hello", "The answer."]
        assert prompt == "and again"

    @pytest.mark.asyncio
    async def test_acquisition_failure_answers_without_context(
        self, service, orchestrator, completion, store
    ):
        orchestrator.acquire_context = AsyncMock(side_effect=RuntimeError("browser crashed"))

        result = await service.answer("s1", "What is new today?")

        assert result.answer == "The answer."
        assert result.urls == []
        _, prompt = completion.complete.await_args.args
        assert prompt == "What is new today?"
        assert len(await store.history("s1")) == 2

    @pytest.mark.asyncio
    async def test_completion_failure_stores_nothing(self, service, completion, store):
        completion.complete = AsyncMock(side_effect=CompletionError("boom"))

        with pytest.raises(CompletionError):
            await service.answer("s1", "hello")

        assert await store.history("s1") == []


class TestClose:

    @pytest.mark.asyncio
    async def test_close_releases_components(self, service, resolver, orchestrator, completion):
        await service.close()

        orchestrator.close.assert_awaited_once()
        resolver.close.assert_awaited_once()
        completion.close.assert_awaited_once()


class SlowBrowser:
    """Browser double that fails if it is closed while a page is loading."""

    live = 0

    def __init__(self):
        self.connected = False

    async def connect(self):
        self.connected = True
        SlowBrowser.live += 1

    async def disconnect(self):
        if self.connected:
            self.connected = False
            SlowBrowser.live -= 1

    async def fetch_text(self, url, timeout_seconds=15):
        await asyncio.sleep(0.05 if "slow" in url else 0)
        if not self.connected:
            raise RuntimeError("Target page, context or browser has been closed")
        return f"text of {url}"


class TestConcurrentAnswers:

    @pytest.mark.asyncio
    async def test_overlapping_sessions_keep_their_context(self, store, completion):
        SlowBrowser.live = 0
        cache = ContentCache()
        pool = BrowserPool(size=5, browser_factory=SlowBrowser, acquire_timeout=5)
        service = ChatService(
            resolver=None,
            orchestrator=AcquisitionOrchestrator(cache, pool),
            store=store,
            completion=completion,
        )

        quick, slow = await asyncio.gather(
            service.answer("a", "Read https://fast.example.com"),
            service.answer("b", "Read https://slow.example.com/1 and https://slow.example.com/2"),
        )

        assert quick.urls == ["https://fast.example.com"]
        assert slow.urls == ["https://slow.example.com/1", "https://slow.example.com/2"]
        assert SlowBrowser.live == 0
        assert pool.open_count == 0
