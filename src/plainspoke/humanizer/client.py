"""Async client for OpenAI-compatible chat-completions services."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Self

import httpx

from plainspoke.errors import GenerationTimeout, GenerationUnavailable
from plainspoke.humanizer.sanitize import sanitize

if TYPE_CHECKING:
    from plainspoke.config import GenerationConfig

logger = logging.getLogger(__name__)

_DEFAULT_USER_MESSAGE = "Rewrite the TEXT above following every instruction."


class ChatCompletionsGenerator:
    """Generate rewritten text via a ``/chat/completions`` endpoint.

    One outbound call per :meth:`generate`; no retries at this layer.
    The whole call is bounded by ``timeout`` and cancelled on expiry.

    Usage::

        async with ChatCompletionsGenerator(api_key=key) as generator:
            text = await generator.generate(prompt)

    Args:
        api_key: Bearer credential for the service.
        base_url: API root, e.g. ``https://api.openai.com/v1``.
        model: Model identifier sent with each request.
        timeout: Overall deadline in seconds.
        temperature: Sampling temperature.
        max_tokens: Completion token ceiling.
        transport: Optional httpx transport (tests inject ``MockTransport``).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        temperature: float = 0.9,
        max_tokens: int = 4000,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls,
        config: GenerationConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ChatCompletionsGenerator:
        """Build a generator from the ``[generation]`` config section."""
        return cls(
            api_key=config.api_key,
            base_url=config.base_url,
            model=config.model,
            timeout=config.timeout_seconds,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            transport=transport,
        )

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *_: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Return the underlying httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError("ChatCompletionsGenerator must be used as an async context manager")
        return self._client

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, prompt: str, user_message: str = _DEFAULT_USER_MESSAGE) -> str:
        """Send ``prompt`` as the system message and return sanitized output.

        Args:
            prompt: Composed instruction prompt.
            user_message: User-turn content accompanying the prompt.

        Returns:
            Sanitized completion text.

        Raises:
            GenerationTimeout: The call exceeded the configured deadline.
            GenerationUnavailable: Missing credential, transport failure,
                non-success status, malformed body, or empty completion.
        """
        if not self._api_key:
            raise GenerationUnavailable("generation API key is not configured")

        try:
            raw = await asyncio.wait_for(self._request(prompt, user_message), self._timeout)
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise GenerationTimeout(f"generation exceeded {self._timeout:.0f}s") from exc

        text = sanitize(raw)
        if not text:
            raise GenerationUnavailable("completion was empty after sanitization")
        return text

    async def _request(self, prompt: str, user_message: str) -> str:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": prompt},
                {"role": "user", "content": user_message},
            ],
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            resp = await self.client.post("/chat/completions", json=payload, headers=headers)
        except httpx.TimeoutException:
            raise
        except httpx.HTTPError as exc:
            raise GenerationUnavailable(f"cannot reach {self._base_url}: {exc}") from exc

        if resp.status_code >= 400:
            logger.error(
                "Generation service returned %d: %s", resp.status_code, resp.text[:500]
            )
            raise GenerationUnavailable(
                f"generation service returned {resp.status_code}",
                upstream_status=resp.status_code,
            )

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise GenerationUnavailable(f"malformed completion body: {exc}") from exc

        if not isinstance(content, str) or not content.strip():
            raise GenerationUnavailable("empty completion")
        return content
