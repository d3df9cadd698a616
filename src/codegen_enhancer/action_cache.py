"""Per-action enhancement with result caching and in-flight deduplication."""

import asyncio
import logging
import time
import uuid
from typing import Dict, Optional

from .config import PromptTemplates
from .exceptions import ProviderResponseError
from .models import Action, ActionContext
from .prompting import action_key as make_action_key
from .prompting import build_action_messages, extract_code_block
from .providers import LLMProvider
from .types import ChatMessages, CompletedFragments, GenerateOptions

logger = logging.getLogger(__name__)


class ActionEnhancer:
    """
    Enhances generated code fragments one action at a time.

    Keeps, for the lifetime of one recording session:
    - a result cache (action key -> enhanced code), filled on success only
    - at most one in-flight request per action key; later callers join it

    ``enhance_action`` never raises: any failure yields the caller's
    original code unchanged.
    """

    def __init__(
        self,
        provider: LLMProvider,
        prompts: PromptTemplates,
        generate_options: Optional[GenerateOptions] = None,
    ):
        self.provider = provider
        self.prompts = prompts
        self.generate_options = generate_options
        self._cache: Dict[str, str] = {}
        self._pending: Dict[str, "asyncio.Task[Optional[str]]"] = {}

    @property
    def pending_count(self) -> int:
        """Number of requests currently in flight."""
        return len(self._pending)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def get_cached(self, key: str) -> Optional[str]:
        """Enhanced code for ``key`` if a request for it succeeded."""
        return self._cache.get(key)

    def cached_results(self) -> CompletedFragments:
        """Snapshot of every successful enhancement so far."""
        return dict(self._cache)

    async def enhance_action(
        self,
        code: str,
        action: Action,
        context: ActionContext,
        action_key: Optional[str] = None,
    ) -> str:
        """
        Return enhanced code for ``action``, or ``code`` on any failure.

        Args:
            code: Fragment produced by the deterministic generator
            action: The recorded action
            context: Frame/timing context of the action
            action_key: Explicit identity (used for debounced completions);
                defaults to ``{action.name}_{context.startTime}``
        """
        key = action_key or make_action_key(action, context)

        # Check and register without yielding to the event loop
        try:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug(f"Using cached result for action: {key}")
                return cached

            task = self._pending.get(key)
            if task is None:
                task = self._dispatch(key, code, action)
            else:
                logger.debug(f"Joining in-flight request for action: {key}")
        except Exception as e:
            logger.warning(f"Could not prepare enhancement for {key}: {e}")
            return code

        try:
            result = await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return code
            raise
        return code if result is None else result

    def start_enhancement(
        self,
        code: str,
        action: Action,
        context: ActionContext,
        action_key: Optional[str] = None,
    ) -> Optional["asyncio.Task[Optional[str]]"]:
        """
        Register the request for an action without awaiting it.

        The result lands in the cache (see :meth:`get_cached`) and the request
        counts towards :meth:`wait_for_all_pending` from the moment this
        returns. Returns None when the key is already cached or the prompt
        could not be built.
        """
        key = action_key or make_action_key(action, context)
        if key in self._cache:
            return None
        task = self._pending.get(key)
        if task is not None:
            return task
        try:
            return self._dispatch(key, code, action)
        except Exception as e:
            logger.warning(f"Could not prepare enhancement for {key}: {e}")
            return None

    def _dispatch(self, key: str, code: str, action: Action) -> "asyncio.Task[Optional[str]]":
        messages = build_action_messages(self.prompts, code, action)
        task = asyncio.create_task(self._perform(key, action.name, messages))
        self._pending[key] = task
        return task

    async def _perform(self, key: str, action_name: str, messages: ChatMessages) -> Optional[str]:
        """Run the single provider call for ``key``. Returns None on failure."""
        request_id = uuid.uuid4().hex[:8]
        started = time.monotonic()
        logger.info(f"Enhancing code with LLM for action: {action_name}")
        logger.debug(f"[{request_id}] Sending request for {key}")

        try:
            response = await self.provider.generate(messages, self.generate_options)
            enhanced = extract_code_block(response)
            if not enhanced:
                raise ProviderResponseError("LLM response contained no code")

            self._cache[key] = enhanced
            logger.debug(
                f"[{request_id}] Cached result for {key} "
                f"({(time.monotonic() - started) * 1000:.0f}ms)"
            )
            return enhanced
        except Exception as e:
            logger.warning(f"Error enhancing code with LLM for {action_name}: {e}")
            logger.debug(f"[{request_id}] Enhancement failure details", exc_info=True)
            return None
        finally:
            self._pending.pop(key, None)

    async def wait_for_all_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every request pending at call time has settled.

        Args:
            timeout: Seconds to wait at most; None waits indefinitely

        Returns:
            True if everything settled, False if the timeout expired first
        """
        tasks = list(self._pending.values())
        if not tasks:
            return True

        logger.debug(f"Waiting for {len(tasks)} pending enhancement requests to complete...")
        _, not_done = await asyncio.wait(tasks, timeout=timeout)
        if not_done:
            logger.warning(
                f"{len(not_done)} enhancement requests still pending after {timeout}s"
            )
            return False

        logger.debug("All pending enhancement requests completed")
        return True

    def cancel_pending(self) -> None:
        """Cancel every in-flight request (session teardown)."""
        for key, task in list(self._pending.items()):
            if not task.done():
                task.cancel()
                logger.debug(f"Cancelled pending enhancement: {key}")
