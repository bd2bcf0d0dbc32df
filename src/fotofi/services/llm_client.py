"""Streaming chat client for agent conversations.

Talks to any OpenAI-compatible chat completions endpoint; the default
configuration points at Gemini's OpenAI-compatible API.
"""

import logging
from typing import AsyncIterator

from openai import AsyncOpenAI, OpenAIError

from fotofi.core.config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when the chat backend cannot produce a reply."""
    pass


class ChatLLMClient:
    """Client for streaming agent replies."""

    def __init__(self, model: str | None = None):
        """Initialize chat client.

        Args:
            model: Model name (default: from settings)
        """
        self.model_name = model or settings.LLM_MODEL
        self.enabled = settings.LLM_ENABLED
        self._client: AsyncOpenAI | None = None

        if not self.enabled:
            logger.warning("LLM is disabled in settings")

    def _get_client(self) -> AsyncOpenAI:
        """Create the API client on first use."""
        if self._client is None:
            logger.info(f"Initializing chat LLM client: {self.model_name}")
            self._client = AsyncOpenAI(
                base_url=settings.LLM_BASE_URL,
                api_key=settings.LLM_API_KEY,
                timeout=settings.LLM_TIMEOUT_SECONDS,
            )
        return self._client

    async def stream_reply(
        self, system_prompt: str, messages: list[dict[str, str]]
    ) -> AsyncIterator[str]:
        """Stream the assistant's reply to a conversation.

        Args:
            system_prompt: Agent persona, sent as the system message
            messages: Prior turns as {"role", "content"} dicts, oldest first

        Yields:
            Text deltas as they arrive

        Raises:
            LLMError: If the request fails or the stream breaks
        """
        if not self.enabled:
            raise LLMError("LLM is disabled")

        payload = [{"role": "system", "content": system_prompt}, *messages]
        try:
            stream = await self._get_client().chat.completions.create(
                model=self.model_name,
                messages=payload,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except OpenAIError as e:
            logger.error(f"Chat LLM call failed: {e}", extra={"model": self.model_name})
            raise LLMError(str(e)) from e
