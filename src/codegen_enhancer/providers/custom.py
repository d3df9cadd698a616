"""User-supplied providers resolved through a registry."""

import importlib
import inspect
import logging
from typing import Any, Callable, Dict, Optional

from .base import LLMProvider
from ..config import CustomProviderConfig, LLMConfig
from ..exceptions import CustomProviderLoadError
from ..types import ChatMessages, GenerateOptions

logger = logging.getLogger(__name__)

# Factory receives ``providerOptions`` and returns an object with
# ``generate(messages, options)`` (sync or async).
ProviderFactory = Callable[[Dict[str, Any]], Any]

provider_registry: Dict[str, ProviderFactory] = {}


def register_provider(name: str) -> Callable[[ProviderFactory], ProviderFactory]:
    """
    Register a provider factory under ``name``.

    Usage::

        @register_provider("my-llm")
        class MyLLM:
            def __init__(self, options): ...
            async def generate(self, messages, options=None) -> str: ...
    """

    def decorator(factory: ProviderFactory) -> ProviderFactory:
        if name in provider_registry and provider_registry[name] is not factory:
            logger.warning(f"Replacing registered custom provider: {name}")
        provider_registry[name] = factory
        return factory

    return decorator


def unregister_provider(name: str) -> None:
    """Remove a registered provider factory."""
    provider_registry.pop(name, None)


def resolve_provider_factory(reference: str) -> ProviderFactory:
    """
    Resolve ``reference`` to a factory.

    ``reference`` is a registered name or a ``package.module:attribute``
    entry point. Importing the module may itself register providers, so
    the registry is consulted again after the import.
    """
    if reference in provider_registry:
        return provider_registry[reference]

    module_name, _, attribute = reference.partition(":")
    if not module_name:
        raise CustomProviderLoadError(reference, "empty provider reference")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise CustomProviderLoadError(reference, f"cannot import {module_name}: {e}") from e

    if reference in provider_registry:
        return provider_registry[reference]

    for candidate in (attribute, "default", "CustomProvider"):
        if candidate and hasattr(module, candidate):
            return getattr(module, candidate)

    raise CustomProviderLoadError(reference, f"no provider exported from {module_name}")


class CustomProvider(LLMProvider):
    """
    Provider delegating to a user-supplied implementation.

    The delegate is resolved on the first ``generate`` call and memoized.
    Resolution failures raise :class:`CustomProviderLoadError` so a broken
    setup is visible instead of silently falling back.
    """

    name = "custom"

    def __init__(self, config: LLMConfig, **kwargs):
        super().__init__(config)
        self._delegate: Optional[Any] = None

    async def _get_delegate(self, block: CustomProviderConfig) -> Any:
        async with self._lock:
            if self._delegate is None:
                self._delegate = self._load_delegate(block)
            return self._delegate

    @staticmethod
    def _load_delegate(block: CustomProviderConfig) -> Any:
        reference = block.provider
        try:
            factory = resolve_provider_factory(reference)
            delegate = factory(dict(block.provider_options))
        except CustomProviderLoadError as e:
            logger.error(f"Error loading custom provider: {e.message} {e.detail}")
            raise
        except Exception as e:
            logger.error(f"Error constructing custom provider {reference}: {e}")
            raise CustomProviderLoadError(reference, str(e)) from e

        if not callable(getattr(delegate, "generate", None)):
            raise CustomProviderLoadError(reference, "provider does not implement generate()")

        logger.info(f"Loaded custom provider: {reference}")
        return delegate

    async def _generate(self, messages: ChatMessages, options: GenerateOptions) -> str:
        block = self._require_block(self.config.custom_provider, "Custom provider")
        delegate = await self._get_delegate(block)

        result = delegate.generate(messages, dict(options))
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)

    async def shutdown(self) -> None:
        """Forward shutdown to the delegate when it supports it."""
        shutdown = getattr(self._delegate, "shutdown", None)
        if callable(shutdown):
            result = shutdown()
            if inspect.isawaitable(result):
                await result
        self._delegate = None
