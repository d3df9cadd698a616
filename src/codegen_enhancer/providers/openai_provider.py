"""OpenAI provider - chat completions through the official SDK."""

import logging
from typing import Any, Dict, Optional

import openai
from openai import AsyncOpenAI

from .base import LLMProvider
from ..config import LLMConfig, ProviderSettings
from ..exceptions import ConfigurationError, ProviderError, ProviderResponseError
from ..types import ChatMessages, GenerateOptions

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """
    Provider using ``openai.AsyncOpenAI`` chat completions.

    Requires: ``openai`` block with ``apiKey`` and ``model``
    """

    name = "openai"
    label = "OpenAI"

    def __init__(self, config: LLMConfig, client: Optional[AsyncOpenAI] = None, **kwargs):
        super().__init__(config)
        self._client = client

    def _block(self) -> ProviderSettings:
        return self._require_block(self.config.openai, self.label)

    def _model_name(self) -> str:
        return self.config.openai.model

    def _create_client(self) -> AsyncOpenAI:
        block = self.config.openai
        # Retries are the caller's decision
        return AsyncOpenAI(
            api_key=block.api_key,
            organization=block.organization,
            base_url=block.base_url,
            max_retries=0,
        )

    async def get_client(self) -> AsyncOpenAI:
        """Get or create the SDK client (lazy init under lock)."""
        async with self._lock:
            if self._client is None:
                logger.info(f"Initializing {self.label} client")
                try:
                    self._client = self._create_client()
                except openai.OpenAIError as e:
                    raise ConfigurationError(f"Failed to initialize {self.label} client: {e}") from e
            return self._client

    async def _generate(self, messages: ChatMessages, options: GenerateOptions) -> str:
        block = self._block()
        temperature, max_tokens = self._sampling(block, options)

        request: Dict[str, Any] = {
            "model": self._model_name(),
            "messages": [dict(message) for message in messages],
            "temperature": temperature,
        }
        if max_tokens is not None:
            request["max_tokens"] = max_tokens

        client = await self.get_client()
        try:
            response = await client.chat.completions.create(**request)
        except openai.APIStatusError as e:
            raise ProviderError(
                f"{self.label} request failed with status {e.status_code}",
                detail=str(e),
            ) from e
        except openai.OpenAIError as e:
            raise ProviderError(f"{self.label} request failed: {e}") from e

        if not response.choices:
            raise ProviderResponseError(f"{self.label} response has no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ProviderResponseError(f"{self.label} response has no message content")
        return content

    async def shutdown(self) -> None:
        """Close the SDK client."""
        if self._client:
            logger.info(f"Shutting down {self.label} client...")
            await self._client.close()
            self._client = None
