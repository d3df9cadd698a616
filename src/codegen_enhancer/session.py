"""Per-recording-session wiring of the enhancement pipeline."""

import logging
from typing import Optional

from .action_cache import ActionEnhancer
from .config import LLMConfig, load_llm_config
from .debouncer import ActionDebouncer
from .logging_config import set_debug_logging
from .models import Action, ActionContext
from .providers import LLMProvider, create_provider
from .script_gate import ScriptEnhancer
from .types import CompletedFragments

logger = logging.getLogger(__name__)


class EnhancementSession:
    """
    Entry point used by the code generator during one recording session.

    Owns the result cache, the in-flight requests, the debounce tracker and
    the provider client. Construct one per recording session and close it
    when the session ends; nothing is shared between sessions.

    Usage::

        async with EnhancementSession(load_llm_config()) as session:
            code = await session.enhance_action(code, action, context)
            ...
            script = await session.enhance_complete_script(script)
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        provider: Optional[LLMProvider] = None,
    ) -> None:
        self.config = config or load_llm_config()
        set_debug_logging(self.config.debug)

        self.provider = provider or create_provider(self.config)
        settings = self.config.enhancer
        block = self.config.active_provider_config()

        self.action_enhancer = ActionEnhancer(self.provider, self.config.prompts)
        self.debouncer = ActionDebouncer(self.action_enhancer, settings.quiet_periods())
        self.script_enhancer = ScriptEnhancer(
            self.provider,
            self.config.prompts,
            action_enhancer=self.action_enhancer,
            temperature=block.complete_script_temperature if block else None,
            safety_threshold=settings.safety_threshold,
            pending_timeout=settings.pending_timeout,
        )
        self._closed = False

        logger.info(
            f"Initialized enhancement session (provider: {self.config.provider}, "
            f"enabled: {settings.enabled})"
        )

    @property
    def enabled(self) -> bool:
        return self.config.enhancer.enabled and not self._closed

    async def enhance_action(self, code: str, action: Action, context: ActionContext) -> str:
        """
        Enhance one generated fragment. Never raises.

        Debounced kinds (fill, press) return ``code`` immediately and are
        enhanced in the background once input settles; skipped kinds
        (screenshot by default) and empty fragments are returned as is.
        """
        if not self.enabled or not code.strip():
            return code
        if action.name in self.config.enhancer.skip_actions:
            return code

        if self.debouncer.handles(action.name):
            try:
                return self.debouncer.on_keystroke_action(code, action, context)
            except Exception as e:
                logger.warning(f"Failed to debounce {action.name}: {e}")
                return code

        return await self.action_enhancer.enhance_action(code, action, context)

    async def enhance_complete_script(self, full_script: str) -> str:
        """
        Enhance the assembled script once recording ends. Never raises.

        Debounced actions still waiting for their quiet period are dispatched
        first so the barrier covers them.
        """
        if not self.enabled or not full_script.strip():
            return full_script

        self.debouncer.flush()
        return await self.script_enhancer.enhance_complete_script(full_script)

    async def wait_for_all_pending(self) -> bool:
        """Wait for every in-flight per-action request."""
        return await self.script_enhancer.wait_for_all_pending()

    def completed_fragments(self) -> CompletedFragments:
        """Enhanced code of settled fill/press bursts, keyed by completion key."""
        fragments = {}
        for key in self.debouncer.completion_keys:
            enhanced = self.action_enhancer.get_cached(key)
            if enhanced is not None:
                fragments[key] = enhanced
        return fragments

    async def close(self) -> None:
        """Cancel outstanding work and release the provider."""
        if self._closed:
            return
        self._closed = True
        self.debouncer.cancel_all()
        self.action_enhancer.cancel_pending()
        await self.provider.shutdown()
        logger.info("Enhancement session closed")

    async def __aenter__(self) -> "EnhancementSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
