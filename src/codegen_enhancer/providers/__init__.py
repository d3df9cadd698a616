"""LLM provider gateway over local and hosted chat backends."""

from .base import LLMProvider
from .anthropic_provider import AnthropicProvider
from .azure_openai import AzureOpenAIProvider
from .custom import CustomProvider, register_provider, unregister_provider
from .factory import create_provider
from .ollama import OllamaProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "LLMProvider",
    "AnthropicProvider",
    "AzureOpenAIProvider",
    "CustomProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "create_provider",
    "register_provider",
    "unregister_provider",
]
