"""Anthropic provider - uses direct API calls with API key."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import anthropic
from anthropic import AsyncAnthropic

from .base import LLMProvider
from ..config import LLMConfig
from ..exceptions import ConfigurationError, ProviderError, ProviderResponseError
from ..types import ChatMessages, GenerateOptions, MessageRole

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 1024


class AnthropicProvider(LLMProvider):
    """
    Provider using the Anthropic Python SDK messages API.

    Requires: ``anthropic`` block with ``apiKey`` and ``model``
    System messages are lifted into the ``system`` parameter.
    """

    name = "anthropic"

    def __init__(self, config: LLMConfig, client: Optional[AsyncAnthropic] = None, **kwargs):
        super().__init__(config)
        self._client = client

    async def get_client(self) -> AsyncAnthropic:
        """Get or create Anthropic client instance (lazy init under lock)."""
        async with self._lock:
            if self._client is None:
                self._client = self._create_client()
            return self._client

    def _create_client(self) -> AsyncAnthropic:
        block = self.config.anthropic
        logger.info("Initializing Anthropic SDK client")
        try:
            client_kwargs: Dict[str, Any] = {"api_key": block.api_key, "max_retries": 0}
            if block.base_url:
                client_kwargs["base_url"] = block.base_url
            return AsyncAnthropic(**client_kwargs)
        except anthropic.AnthropicError as e:
            logger.error(f"Failed to initialize Anthropic client: {e}")
            raise ConfigurationError(f"Failed to initialize Anthropic client: {e}") from e

    @staticmethod
    def _split_messages(messages: ChatMessages) -> Tuple[str, List[Dict[str, str]]]:
        system_parts = [m["content"] for m in messages if m["role"] == MessageRole.SYSTEM.value]
        conversation = [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m["role"] != MessageRole.SYSTEM.value
        ]
        return "\n\n".join(system_parts), conversation

    async def _generate(self, messages: ChatMessages, options: GenerateOptions) -> str:
        block = self._require_block(self.config.anthropic, "Anthropic")
        temperature, max_tokens = self._sampling(block, options, default_max_tokens=DEFAULT_MAX_TOKENS)
        system, conversation = self._split_messages(messages)

        request: Dict[str, Any] = {
            "model": block.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": conversation,
        }
        if system:
            request["system"] = system

        client = await self.get_client()
        try:
            response = await client.messages.create(**request)
        except anthropic.APIStatusError as e:
            raise ProviderError(
                f"Anthropic request failed with status {e.status_code}",
                detail=str(e),
            ) from e
        except anthropic.AnthropicError as e:
            raise ProviderError(f"Anthropic request failed: {e}") from e

        text = "".join(
            getattr(content_block, "text", "")
            for content_block in response.content
            if getattr(content_block, "type", None) == "text"
        )
        if not text:
            raise ProviderResponseError("Anthropic response has no text content")
        return text

    async def shutdown(self) -> None:
        """Cleanup on session end."""
        if self._client:
            logger.info("Shutting down Anthropic SDK client...")
            await self._client.close()
            self._client = None
