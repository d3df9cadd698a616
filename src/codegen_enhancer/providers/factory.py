"""Provider selection from configuration."""

import logging
from typing import Dict, Type

from .anthropic_provider import AnthropicProvider
from .azure_openai import AzureOpenAIProvider
from .base import LLMProvider
from .custom import CustomProvider
from .ollama import OllamaProvider
from .openai_provider import OpenAIProvider
from ..config import LLMConfig

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Dict[str, Type[LLMProvider]] = {
    "ollama": OllamaProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "azure-openai": AzureOpenAIProvider,
    "custom": CustomProvider,
}


def create_provider(config: LLMConfig, **kwargs) -> LLMProvider:
    """
    Create the provider selected by ``config.provider``.

    Unknown provider names fall back to the local Ollama backend.
    """
    provider_class = PROVIDER_CLASSES.get(config.provider)
    if provider_class is None:
        logger.warning(f"Unknown LLM provider '{config.provider}', using ollama")
        provider_class = OllamaProvider

    logger.info(f"Creating {provider_class.name} LLM provider")
    return provider_class(config, **kwargs)
