"""
Retry policy for transient I/O errors.

Wraps tenacity so call sites only choose attempt count, backoff and the
exception types worth retrying.
"""

from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.logging import get_logger

log = get_logger("shared", "retry")


class RetryPolicy:
    """
    Bounded retry with exponential backoff.

    With the defaults an operation is tried 3 times, sleeping 1s then 2s
    between attempts. The last exception is re-raised once attempts run out.
    """

    def __init__(
        self,
        attempts: int = 3,
        initial_backoff: float = 1.0,
        max_backoff: float = 30.0,
        retry_on: tuple = (Exception,),
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize policy.

        Args:
            attempts: Total number of tries (1 means no retry)
            initial_backoff: Seconds to wait before the first retry, doubled each time
            max_backoff: Upper bound on a single wait
            retry_on: Exception types that trigger a retry
            sleep: Coroutine used to wait between attempts (defaults to asyncio.sleep)
        """
        self.attempts = max(1, int(attempts))
        self.initial_backoff = max(0.0, float(initial_backoff))
        self.max_backoff = max_backoff
        self.retry_on = retry_on
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: Optional[dict], retry_on: tuple = (Exception,)) -> "RetryPolicy":
        """Build a policy from a config section with attempts/initial_backoff/max_backoff."""
        config = config or {}
        return cls(
            attempts=config.get("attempts", 3),
            initial_backoff=config.get("initial_backoff_seconds", 1.0),
            max_backoff=config.get("max_backoff_seconds", 30.0),
            retry_on=retry_on,
        )

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        """A policy that tries exactly once."""
        return cls(attempts=1, initial_backoff=0.0)

    def _retrying(self, operation: str) -> AsyncRetrying:
        def _before_sleep(retry_state):
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            log.warning(
                "retry.attempt_failed",
                operation=operation,
                attempt=retry_state.attempt_number,
                error=str(exc),
            )

        kwargs = {"sleep": self._sleep} if self._sleep else {}
        return AsyncRetrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(
                multiplier=self.initial_backoff,
                min=self.initial_backoff,
                max=self.max_backoff,
            ),
            retry=retry_if_exception_type(self.retry_on),
            before_sleep=_before_sleep,
            reraise=True,
            **kwargs,
        )

    async def call(
        self,
        fn: Callable[..., Awaitable[Any]],
        *args,
        operation: str = "",
        **kwargs,
    ) -> Any:
        """
        Await fn(*args, **kwargs) under this policy.

        Args:
            fn: Coroutine function to call
            operation: Name used in retry log events

        Returns:
            Whatever fn returns on the first successful attempt
        """
        async for attempt in self._retrying(operation or getattr(fn, "__name__", "call")):
            with attempt:
                return await fn(*args, **kwargs)
