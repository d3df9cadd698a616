"""Abstract base class for LLM providers."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple, TypeVar

from ..config import LLMConfig, ProviderSettings
from ..exceptions import ConfigurationError, ProviderResponseError, ProviderTimeoutError
from ..types import ChatMessages, GenerateOptions

logger = logging.getLogger(__name__)

BlockT = TypeVar("BlockT", bound=ProviderSettings)

DEFAULT_TEMPERATURE = 0.2


def is_debug() -> bool:
    """Check if debug logging is enabled."""
    return logger.isEnabledFor(logging.DEBUG)


class LLMProvider(ABC):
    """
    Uniform chat-style interface over one LLM backend.

    Implementations can use different underlying systems:
    - Local inference server (Ollama over HTTP)
    - Hosted APIs (OpenAI, Anthropic, Azure OpenAI)
    - A user-registered provider

    ``generate`` performs exactly one round trip. Retry policy belongs to
    the caller.
    """

    name = "base"

    def __init__(self, config: LLMConfig, **kwargs):
        """
        Initialize provider.

        Args:
            config: Resolved LLM configuration
            **kwargs: Provider-specific collaborators (pre-built clients, transports)
        """
        self.config = config
        self.request_timeout = config.enhancer.request_timeout
        self._lock = asyncio.Lock()

    async def generate(
        self,
        messages: ChatMessages,
        options: Optional[GenerateOptions] = None,
    ) -> str:
        """
        Send ``messages`` to the backend and return the response text.

        Raises:
            ConfigurationError: The provider's config block is missing
            ProviderTimeoutError: No answer within ``request_timeout``
            ProviderResponseError: Empty or malformed answer
            ProviderError: Transport or API failure
        """
        options = options or {}

        if is_debug():
            logger.debug("=" * 80)
            logger.debug(f"{self.name.upper()} INPUT ({len(messages)} messages, options={dict(options)}):")
            for message in messages:
                logger.debug("-" * 80)
                logger.debug(f"[{message['role']}]")
                logger.debug(message["content"])
            logger.debug("=" * 80)

        try:
            text = await asyncio.wait_for(
                self._generate(messages, options), timeout=self.request_timeout
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(self.request_timeout) from e

        if not text or not text.strip():
            raise ProviderResponseError(f"{self.name} returned an empty response")

        if is_debug():
            logger.debug(f"{self.name.upper()} OUTPUT: {text[:500]}{'...' if len(text) > 500 else ''}")

        return text

    @abstractmethod
    async def _generate(self, messages: ChatMessages, options: GenerateOptions) -> str:
        """Perform the backend call. Subclasses translate errors to ProviderError."""
        pass

    async def shutdown(self) -> None:
        """Release network clients."""
        pass

    @staticmethod
    def _require_block(block: Optional[BlockT], label: str) -> BlockT:
        if block is None:
            raise ConfigurationError(f"{label} configuration is missing")
        return block

    @staticmethod
    def _sampling(
        block: ProviderSettings,
        options: GenerateOptions,
        default_max_tokens: Optional[int] = None,
    ) -> Tuple[float, Optional[int]]:
        """Resolve temperature and token limit: call options beat the config block."""
        temperature = options.get("temperature")
        if temperature is None:
            temperature = block.temperature if block.temperature is not None else DEFAULT_TEMPERATURE
        max_tokens = options.get("max_tokens")
        if max_tokens is None:
            max_tokens = block.max_tokens if block.max_tokens is not None else default_max_tokens
        return temperature, max_tokens
