"""FastAPI HTTP API for webchat."""

from typing import Optional

from fastapi import FastAPI, HTTPException

from acquirer.src.orchestrator import AcquisitionOrchestrator
from acquirer.src.searcher import build_resolver
from conversation.src.models import ShareSnapshot
from conversation.src.store import ConversationStore
from shared.config import load_config, section
from shared.errors import CompletionError, ConfigurationError, StoreError
from shared.logging import get_logger

from .completion import CompletionClient
from .models import (
    ChatAnswer, ChatRequest, ContinueRequest, ContinueResponse,
    HealthResponse, HistoryResponse, ShareRequest, ShareResponse,
)
from .service import ChatService

log = get_logger("chat", "api")


def build_service(config: dict, store: Optional[ConversationStore] = None) -> ChatService:
    """Construct every pipeline component once, from config."""
    store = store or ConversationStore.from_config(section(config, "store"))
    return ChatService(
        resolver=build_resolver(section(config, "search")),
        orchestrator=AcquisitionOrchestrator.from_config(config),
        store=store,
        completion=CompletionClient.from_config(section(config, "llm")),
    )


def create_app(
    config: Optional[dict] = None,
    service: Optional[ChatService] = None,
    store: Optional[ConversationStore] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Loaded config (defaults to config.yaml)
        service: Prebuilt chat service; built from config when omitted
        store: Conversation store used when building the service
    """
    config = config if config is not None else load_config()

    app = FastAPI(
        title="Webchat",
        description="Web-augmented chat with shareable conversations",
        version="0.1.0",
    )

    service = service or build_service(config, store=store)
    store = service.store
    app.state.service = service

    @app.on_event("shutdown")
    async def shutdown():
        await service.close()
        await store.close()

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse()

    @app.post("/chat", response_model=ChatAnswer)
    async def chat(request: ChatRequest):
        """Answer a message, grounding it in web content when useful."""
        try:
            return await service.answer(request.session_id, request.message)
        except (ConfigurationError, CompletionError, StoreError) as e:
            log.error("api.chat_failed", session_id=request.session_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to process request")

    @app.get("/chat/history/{session_id}", response_model=HistoryResponse)
    async def history(session_id: str):
        try:
            messages = await store.history(session_id)
        except StoreError as e:
            log.error("api.history_failed", session_id=session_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to load history")
        return HistoryResponse(session_id=session_id, messages=messages)

    @app.post("/chat/share", response_model=ShareResponse)
    async def share(request: ShareRequest):
        """Create a 24h share link for a session."""
        try:
            share_id = await store.share(request.session_id)
        except StoreError as e:
            log.error("api.share_failed", session_id=request.session_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to create share link")
        return ShareResponse(share_id=share_id)

    @app.get("/chat/shared/{share_id}", response_model=ShareSnapshot)
    async def shared(share_id: str):
        """Fetch a shared conversation."""
        try:
            snapshot = await store.resolve_share(share_id)
        except StoreError as e:
            log.error("api.shared_failed", share_id=share_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to load shared chat")
        if snapshot is None:
            raise HTTPException(status_code=404, detail="Shared chat not found or expired")
        return snapshot

    @app.post("/chat/continue", response_model=ContinueResponse)
    async def continue_shared(request: ContinueRequest):
        """Fork a shared conversation into a new session."""
        try:
            success = await store.fork(request.share_id, request.new_session_id)
        except StoreError as e:
            log.error("api.continue_failed", share_id=request.share_id, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to continue conversation")
        return ContinueResponse(success=success)

    return app
