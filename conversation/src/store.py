"""
Conversation store backed by Redis.

Key structure:
- chat:{session_id} - list of JSON messages, oldest first, capped in length
- share:{share_id} - JSON share snapshot, expires 24h after creation
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from shared.config import env_or
from shared.errors import StoreError
from shared.logging import get_logger
from shared.retry import RetryPolicy

from .models import Message, ShareSnapshot, validate_message, validate_snapshot

log = get_logger("conversation", "store")

SESSION_KEY_PREFIX = "chat"
SHARE_KEY_PREFIX = "share"
SHARE_TTL_SECONDS = 24 * 60 * 60
# Per-session retention; fork() merges by position and is affected by trimming
DEFAULT_MAX_MESSAGES = 100
DEFAULT_REDIS_URL = "redis://localhost:6379/0"

TRANSIENT_ERRORS = (RedisConnectionError, RedisTimeoutError)


class ConversationStore:
    """
    Append-only session logs with share and fork.

    Every Redis call runs under the retry policy; transient errors that
    outlast it surface as StoreError.
    """

    def __init__(
        self,
        redis: Redis,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        share_ttl_seconds: int = SHARE_TTL_SECONDS,
        retry: Optional[RetryPolicy] = None,
    ):
        """
        Initialize store.

        Args:
            redis: Async Redis client (decode_responses=True)
            max_messages: Retention cap per session, oldest dropped first
                (trimming an origin after a share shifts what fork() merges)
            share_ttl_seconds: Lifetime of a share snapshot
            retry: Retry policy for Redis calls
        """
        self.redis = redis
        self.max_messages = max(1, int(max_messages))
        self.share_ttl_seconds = int(share_ttl_seconds)
        self.retry = retry or RetryPolicy(attempts=3, initial_backoff=1.0, retry_on=TRANSIENT_ERRORS)

    @classmethod
    def from_config(cls, config: Optional[dict]) -> "ConversationStore":
        """Build a store from the `store` config section."""
        config = config or {}
        url = env_or(config.get("redis_url"), "REDIS_URL") or DEFAULT_REDIS_URL
        redis = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=config.get("socket_timeout_seconds", 5),
            socket_connect_timeout=config.get("socket_timeout_seconds", 5),
        )
        return cls(
            redis,
            max_messages=config.get("max_messages", DEFAULT_MAX_MESSAGES),
            share_ttl_seconds=config.get("share_ttl_seconds", SHARE_TTL_SECONDS),
            retry=RetryPolicy.from_config(config.get("retry"), retry_on=TRANSIENT_ERRORS),
        )

    async def close(self):
        """Close the Redis connection pool."""
        await self.redis.aclose()

    @staticmethod
    def session_key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}:{session_id}"

    @staticmethod
    def share_key(share_id: str) -> str:
        return f"{SHARE_KEY_PREFIX}:{share_id}"

    async def _call(self, operation: str, fn, *args, **kwargs) -> Any:
        try:
            return await self.retry.call(fn, *args, operation=operation, **kwargs)
        except RedisError as e:
            log.error("store.operation_failed", operation=operation, error=str(e))
            raise StoreError(f"{operation} failed: {e}") from e

    # --- Session log ---

    async def _push(self, key: str, payloads: list[str]):
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.rpush(key, *payloads)
            pipe.ltrim(key, -self.max_messages, -1)
            await pipe.execute()

    async def append(self, session_id: str, messages: Iterable[Any]) -> int:
        """
        Append messages to a session.

        Invalid messages are dropped. Valid ones go in with one push, then
        the log is trimmed to the retention cap.

        Args:
            session_id: Session to append to
            messages: Message objects, dicts or JSON text

        Returns:
            Number of messages stored
        """
        payloads = []
        for raw in messages:
            result = validate_message(raw)
            if not result.ok:
                log.warning("store.message_rejected", session_id=session_id, reason=result.error)
                continue
            payloads.append(result.value.to_json())

        if not payloads:
            return 0

        await self._call("append", self._push, self.session_key(session_id), payloads)
        log.debug("store.append", session_id=session_id, count=len(payloads))
        return len(payloads)

    async def history(self, session_id: str) -> list[Message]:
        """
        Full retained history of a session, oldest first.

        Malformed stored entries are skipped.
        """
        raw_entries = await self._call(
            "history", self.redis.lrange, self.session_key(session_id), 0, -1
        )

        messages = []
        for position, raw in enumerate(raw_entries or []):
            result = validate_message(raw)
            if result.ok:
                messages.append(result.value)
            else:
                log.warning(
                    "store.malformed_entry",
                    session_id=session_id,
                    position=position,
                    reason=result.error,
                )
        return messages

    # --- Share / fork ---

    async def share(self, session_id: str) -> str:
        """
        Snapshot a session's current history under a new share id.

        Returns:
            The share id

        Raises:
            StoreError: the snapshot could not be written
        """
        messages = await self.history(session_id)
        share_id = str(uuid.uuid4())
        created_at = datetime.now(timezone.utc)
        snapshot = ShareSnapshot(
            messages=messages,
            origin_session_id=session_id,
            created_at=created_at,
            expires_at=created_at + timedelta(seconds=self.share_ttl_seconds),
        )

        await self._call(
            "share",
            self.redis.setex,
            self.share_key(share_id),
            self.share_ttl_seconds,
            snapshot.model_dump_json(),
        )
        log.info("store.share_created", session_id=session_id, share_id=share_id, messages=len(messages))
        return share_id

    async def resolve_share(self, share_id: str) -> Optional[ShareSnapshot]:
        """
        Look up a share snapshot.

        Returns:
            The snapshot, or None if it is missing, expired or malformed
        """
        raw = await self._call("resolve_share", self.redis.get, self.share_key(share_id))
        if raw is None:
            return None

        result = validate_snapshot(raw)
        if not result.ok:
            log.warning("store.malformed_share", share_id=share_id, reason=result.error)
            return None

        snapshot = result.value
        if snapshot.is_expired():
            return None
        return snapshot

    async def fork(self, share_id: str, new_session_id: str) -> bool:
        """
        Start a new session from a share.

        The new session gets the snapshot's messages followed by whatever the
        origin session gained after the snapshot was taken. Messages are
        matched by position: if the origin was trimmed to max_messages after
        the share, its newer messages start earlier and that many are lost.

        Returns:
            True if the new session was seeded, False if the share is missing or empty
        """
        snapshot = await self.resolve_share(share_id)
        if snapshot is None or not snapshot.messages:
            log.info("store.fork_skipped", share_id=share_id, reason="missing" if snapshot is None else "empty")
            return False

        origin = await self.history(snapshot.origin_session_id)
        merged = list(snapshot.messages) + origin[len(snapshot.messages):]

        stored = await self.append(new_session_id, merged)
        log.info(
            "store.forked",
            share_id=share_id,
            new_session_id=new_session_id,
            from_snapshot=len(snapshot.messages),
            from_origin=len(merged) - len(snapshot.messages),
        )
        return stored > 0
