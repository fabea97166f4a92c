"""Request/response models for the chat API."""

from pydantic import BaseModel, Field

from conversation.src.models import Message


class ChatRequest(BaseModel):
    """A user message for a session."""
    message: str = Field(min_length=1)
    session_id: str = Field(min_length=1)


class ChatAnswer(BaseModel):
    """The assistant's answer and the URLs it drew on."""
    answer: str
    urls: list[str] = Field(default_factory=list)


class ShareRequest(BaseModel):
    session_id: str = Field(min_length=1)


class ShareResponse(BaseModel):
    share_id: str


class ContinueRequest(BaseModel):
    share_id: str = Field(min_length=1)
    new_session_id: str = Field(min_length=1)


class ContinueResponse(BaseModel):
    success: bool


class HistoryResponse(BaseModel):
    session_id: str
    messages: list[Message]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
