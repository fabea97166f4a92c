"""Data models for the conversation store."""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

T = TypeVar("T")


class Role(str, Enum):
    """Who wrote a message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """A single chat message. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: StrictStr
    sources: list[StrictStr] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json()


class ShareSnapshot(BaseModel):
    """A frozen copy of a session's history, addressable by share id."""
    model_config = ConfigDict(frozen=True)

    messages: list[Message]
    origin_session_id: StrictStr
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """Outcome of a shape check: a value, or the reason it was rejected."""
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "ValidationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ValidationResult[T]":
        return cls(ok=False, error=error)


def _first_error(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return "invalid"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "value"
    return f"{location}: {first.get('msg', 'invalid')}"


def _decode(raw: Any) -> Any:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        return json.loads(raw)
    return raw


def validate_message(raw: Any) -> ValidationResult[Message]:
    """
    Shape-check a message given as a Message, dict or JSON text.

    Returns:
        ValidationResult holding the Message, or the rejection reason
    """
    if isinstance(raw, Message):
        return ValidationResult.success(raw)
    try:
        data = _decode(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        return ValidationResult.failure(f"not JSON: {e}")
    if not isinstance(data, dict):
        return ValidationResult.failure(f"expected an object, got {type(data).__name__}")
    try:
        return ValidationResult.success(Message.model_validate(data))
    except ValidationError as e:
        return ValidationResult.failure(_first_error(e))


def validate_snapshot(raw: Any) -> ValidationResult[ShareSnapshot]:
    """Shape-check a stored share snapshot record."""
    try:
        data = _decode(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        return ValidationResult.failure(f"not JSON: {e}")
    if not isinstance(data, dict):
        return ValidationResult.failure(f"expected an object, got {type(data).__name__}")
    try:
        return ValidationResult.success(ShareSnapshot.model_validate(data))
    except ValidationError as e:
        return ValidationResult.failure(_first_error(e))
