"""
Chat service - the request-handling pipeline.

message -> trigger detection -> search or explicit URLs -> acquisition
-> completion -> store.
"""

from typing import Optional

from acquirer.src.orchestrator import AcquisitionOrchestrator, format_context
from acquirer.src.searcher import SearchResolver, extract_urls, needs_search
from conversation.src.models import Message, Role
from conversation.src.store import ConversationStore
from shared.logging import get_logger

from .completion import CompletionClient
from .models import ChatAnswer

log = get_logger("chat", "service")


def build_prompt(message: str, context: str) -> str:
    """User prompt with web context inlined ahead of the question."""
    if not context:
        return message
    return f"Context from web search:\n{context}\n\nQuestion: {message}"


class ChatService:
    """
    Answers chat messages, grounding them in web content when useful.

    Web context is an enhancement: if acquisition fails entirely the answer
    is generated without it.
    """

    def __init__(
        self,
        resolver: Optional[SearchResolver],
        orchestrator: AcquisitionOrchestrator,
        store: ConversationStore,
        completion: CompletionClient,
    ):
        self.resolver = resolver
        self.orchestrator = orchestrator
        self.store = store
        self.completion = completion

    async def gather_context(self, message: str) -> tuple[str, list[str]]:
        """
        Collect web context for a message.

        Returns:
            (formatted context, URLs that produced content)
        """
        urls = extract_urls(message)
        if not urls and self.resolver is not None and needs_search(message):
            urls = await self.resolver.resolve(message)
        if not urls:
            return "", []

        contexts = await self.orchestrator.acquire_context(urls)
        cited = [url for url, text in zip(urls, contexts) if text]
        return format_context(urls, contexts), cited

    async def answer(self, session_id: str, message: str) -> ChatAnswer:
        """
        Answer a message within a session and record the exchange.

        Raises:
            ConfigurationError / CompletionError from the completion call
            StoreError if the session cannot be read or written
        """
        try:
            context, cited = await self.gather_context(message)
        except Exception as e:
            log.error("service.acquisition_failed", session_id=session_id, error=str(e))
            context, cited = "", []

        history = await self.store.history(session_id)
        answer = await self.completion.complete(history, build_prompt(message, context))

        await self.store.append(
            session_id,
            [
                Message(role=Role.USER, content=message),
                Message(role=Role.ASSISTANT, content=answer, sources=cited),
            ],
        )
        log.info("service.answered", session_id=session_id, sources=len(cited), history=len(history))
        return ChatAnswer(answer=answer, urls=cited)

    async def close(self):
        """Release owned resources."""
        await self.orchestrator.close()
        if self.resolver is not None:
            await self.resolver.close()
        await self.completion.close()
