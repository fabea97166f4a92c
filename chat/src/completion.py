"""
Language-model completion client.

Talks to any OpenAI-compatible /chat/completions endpoint (Groq by default).
"""

import asyncio
from typing import Optional, Sequence

import aiohttp

from conversation.src.models import Message
from shared.config import env_or
from shared.errors import CompletionError, ConfigurationError
from shared.logging import get_logger

log = get_logger("chat", "completion")

DEFAULT_API_BASE = "https://api.groq.com/openai/v1"
DEFAULT_MODEL = "mixtral-8x7b-32768"
NO_ANSWER = "No answer generated"

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on the provided context. "
    "If using information from the web, cite the source."
)


class CompletionClient:
    """
    Chat completion over HTTP.

    Usage:
        client = CompletionClient(api_key="...")
        text = await client.complete(history, "What's new in Python?")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: str = DEFAULT_API_BASE,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        timeout_seconds: float = 60,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        """
        Initialize the client.

        Args:
            api_key: API key (or uses GROQ_API_KEY env var)
            api_base: Base URL of the OpenAI-compatible API
            model: Model name
            temperature: Sampling temperature
            max_tokens: Completion length cap
            timeout_seconds: Request timeout
            system_prompt: System message sent ahead of the history
        """
        self._api_key = env_or(api_key, "GROQ_API_KEY")
        self.api_base = api_base.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.system_prompt = system_prompt
        self._http_session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, config: Optional[dict]) -> "CompletionClient":
        """Build a client from the `llm` config section."""
        config = config or {}
        return cls(
            api_key=config.get("api_key"),
            api_base=config.get("api_base", DEFAULT_API_BASE),
            model=config.get("model", DEFAULT_MODEL),
            temperature=config.get("temperature", 0.7),
            max_tokens=config.get("max_tokens", 2048),
            timeout_seconds=config.get("timeout_seconds", 60),
        )

    async def _get_http_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()
        return self._http_session

    async def close(self):
        """Close HTTP session."""
        if self._http_session and not self._http_session.closed:
            await self._http_session.close()
            self._http_session = None

    def build_messages(self, history: Sequence[Message], prompt: str) -> list[dict]:
        """System prompt, prior turns, then the new user prompt."""
        messages = [{"role": "system", "content": self.system_prompt}]
        for message in history:
            messages.append({"role": message.role.value, "content": message.content})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def complete(self, history: Sequence[Message], prompt: str) -> str:
        """
        Generate an answer.

        Args:
            history: Prior messages of the session
            prompt: The user prompt, with any web context already inlined

        Returns:
            Answer text

        Raises:
            ConfigurationError: no API key configured
            CompletionError: the API call failed
        """
        if not self._api_key:
            raise ConfigurationError(
                "LLM API key not provided. Set GROQ_API_KEY or llm.api_key in config.yaml."
            )

        payload = {
            "model": self.model,
            "messages": self.build_messages(history, prompt),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        try:
            session = await self._get_http_session()
            async with session.post(
                f"{self.api_base}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as resp:
                data = await resp.json(content_type=None)
                if resp.status != 200:
                    error = data.get("error", {}) if isinstance(data, dict) else {}
                    message = error.get("message", str(data)) if isinstance(error, dict) else str(error)
                    raise CompletionError(f"Completion API returned {resp.status}: {message}")

        except asyncio.TimeoutError:
            raise CompletionError(f"Completion timed out after {self.timeout_seconds} seconds")
        except aiohttp.ClientError as e:
            raise CompletionError(f"Completion request failed: {e}") from e
        except ValueError as e:
            raise CompletionError(f"Completion API returned a non-JSON body: {e}") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            log.warning("completion.no_choices", model=self.model)
            return NO_ANSWER

        content = (choices[0].get("message") or {}).get("content")
        return content or NO_ANSWER
