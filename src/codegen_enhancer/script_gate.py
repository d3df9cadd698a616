"""Whole-script enhancement, gated behind per-action work and a safety check."""

import hashlib
import logging
from typing import Dict, Optional

from .action_cache import ActionEnhancer
from .config import PromptTemplates
from .exceptions import ProviderResponseError
from .prompting import build_script_messages, extract_code_block
from .providers import LLMProvider
from .safety import DEFAULT_SAFETY_THRESHOLD, check_operation_counts
from .types import GenerateOptions

logger = logging.getLogger(__name__)


def script_digest(script: str) -> str:
    """Cache key for a script: SHA-256 of its UTF-8 bytes."""
    return hashlib.sha256(script.encode("utf-8")).hexdigest()


class ScriptEnhancer:
    """
    Rewrites the assembled script once recording ends.

    Waits for all per-action requests first, issues one provider call with
    the script-level temperature, and only accepts the rewrite if it keeps
    the script's interactions, assertions and navigations.
    ``enhance_complete_script`` never raises.
    """

    def __init__(
        self,
        provider: LLMProvider,
        prompts: PromptTemplates,
        action_enhancer: Optional[ActionEnhancer] = None,
        temperature: Optional[float] = None,
        safety_threshold: float = DEFAULT_SAFETY_THRESHOLD,
        pending_timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.prompts = prompts
        self.action_enhancer = action_enhancer
        self.temperature = temperature
        self.safety_threshold = safety_threshold
        self.pending_timeout = pending_timeout
        self._cache: Dict[str, str] = {}

    async def wait_for_all_pending(self) -> bool:
        """Barrier: resolves once per-action work has settled (or timed out)."""
        if self.action_enhancer is None:
            return True
        return await self.action_enhancer.wait_for_all_pending(self.pending_timeout)

    async def enhance_complete_script(self, full_script: str) -> str:
        """
        Return the enhanced script, or ``full_script`` on failure or rejection.

        Args:
            full_script: The complete generated test script
        """
        try:
            await self.wait_for_all_pending()

            digest = script_digest(full_script)
            cached = self._cache.get(digest)
            if cached is not None:
                logger.debug("Using cached result for complete script")
                return cached

            logger.info("Enhancing complete test script with LLM...")
            logger.debug(f"Complete script length: {len(full_script)} characters")

            options: GenerateOptions = {}
            if self.temperature is not None:
                options["temperature"] = self.temperature

            messages = build_script_messages(self.prompts, full_script)
            response = await self.provider.generate(messages, options)
            enhanced = extract_code_block(response)
            if not enhanced:
                raise ProviderResponseError("LLM response contained no script")

            if not check_operation_counts(full_script, enhanced, self.safety_threshold):
                logger.debug("Enhanced script dropped operations, keeping the original")
                enhanced = full_script

            self._cache[digest] = enhanced
            return enhanced
        except Exception as e:
            logger.warning(f"Error enhancing complete script with LLM: {e}")
            logger.debug("Complete script enhancement failure details", exc_info=True)
            return full_script
