"""Ollama provider - local inference server over HTTP."""

import logging
from typing import Any, Dict, Optional

import httpx

from .base import LLMProvider
from ..config import LLMConfig
from ..exceptions import ProviderError, ProviderResponseError
from ..types import ChatMessages, GenerateOptions

logger = logging.getLogger(__name__)


class OllamaProvider(LLMProvider):
    """
    Provider talking to a local Ollama server through ``/api/chat``.

    Requires: ``ollama`` block with ``baseUrl`` and ``model``
    """

    name = "ollama"

    def __init__(
        self,
        config: LLMConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ):
        super().__init__(config)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (lazy init under lock)."""
        async with self._lock:
            if self._client is None:
                logger.debug("Creating Ollama HTTP client")
                self._client = httpx.AsyncClient(
                    transport=self._transport,
                    timeout=httpx.Timeout(self.request_timeout),
                )
            return self._client

    async def _generate(self, messages: ChatMessages, options: GenerateOptions) -> str:
        block = self._require_block(self.config.ollama, "Ollama")
        temperature, num_predict = self._sampling(block, options, default_max_tokens=block.num_predict)

        model_options: Dict[str, Any] = {"temperature": temperature}
        if num_predict is not None:
            model_options["num_predict"] = num_predict

        payload = {
            "model": block.model,
            "messages": [dict(message) for message in messages],
            "stream": False,
            "options": model_options,
        }
        endpoint = f"{block.base_url.rstrip('/')}/api/chat"

        client = await self.get_client()
        try:
            response = await client.post(endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Ollama request failed with status {e.response.status_code}",
                detail=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Ollama request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseError("Ollama returned invalid JSON") from e

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ProviderResponseError("Ollama response has no message content")
        return content

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.debug("Ollama HTTP client closed")
