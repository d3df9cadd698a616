"""Debouncing for actions recorded once per keystroke."""

import asyncio
import logging
from enum import Enum
from typing import Dict, List, Optional

from .action_cache import ActionEnhancer
from .models import Action, ActionContext
from .prompting import format_start_time

logger = logging.getLogger(__name__)


class DebounceState(Enum):
    """Per-element debounce state."""
    IDLE = "idle"                              # No occurrence waiting
    PENDING_COMPLETION = "pending_completion"  # Waiting for the quiet period


class DebounceEntry:
    """Tracker entry for one element of one debounced action kind."""

    def __init__(self, kind: str, context: ActionContext, code: str, timestamp: float) -> None:
        self.kind = kind
        self.first_start_time = context.startTime
        self.last_timestamp = timestamp
        self.latest_context = context
        self.latest_code = code
        self.state = DebounceState.PENDING_COMPLETION
        self.timer: Optional["asyncio.Task[None]"] = None

    def touch(self, context: ActionContext, code: str, timestamp: float) -> None:
        """Record a newer occurrence; the burst keeps its first start time."""
        self.last_timestamp = timestamp
        self.latest_context = context
        self.latest_code = code


class ActionDebouncer:
    """
    Defers enhancement of fill/press actions until input has settled.

    Every occurrence returns its code immediately. Once an element has seen
    no new occurrence for the kind's quiet period, the latest occurrence is
    dispatched once through the :class:`ActionEnhancer` under a completion
    key ``{kind}_completed_{first start time}``. The enhanced text is then
    available from the enhancer's cache for the whole-script pass.
    """

    def __init__(self, enhancer: ActionEnhancer, quiet_periods: Dict[str, float]):
        self.enhancer = enhancer
        self.quiet_periods = dict(quiet_periods)
        self._entries: Dict[str, DebounceEntry] = {}
        self._completion_keys: List[str] = []

    def handles(self, kind: str) -> bool:
        """Whether ``kind`` is debounced."""
        return kind in self.quiet_periods

    @staticmethod
    def element_key(action: Action, context: ActionContext) -> str:
        """Kind-qualified identity of the target element."""
        frame_path = ">".join(context.frame.framePath)
        return f"{action.name}:{frame_path}:{action.selector or ''}"

    @staticmethod
    def completion_key(kind: str, first_start_time: float) -> str:
        """Action key used for the dispatched completion of a burst."""
        return f"{kind}_completed_{format_start_time(first_start_time)}"

    @property
    def tracked_keys(self) -> List[str]:
        """Element keys currently waiting for their quiet period."""
        return list(self._entries)

    @property
    def completion_keys(self) -> List[str]:
        """Completion keys dispatched so far, in dispatch order."""
        return list(self._completion_keys)

    def state(self, element_key: str) -> DebounceState:
        entry = self._entries.get(element_key)
        return entry.state if entry else DebounceState.IDLE

    def on_keystroke_action(self, code: str, action: Action, context: ActionContext) -> str:
        """
        Track one occurrence and return ``code`` unchanged.

        Must be called from a running event loop.
        """
        quiet_period = self.quiet_periods.get(action.name)
        if quiet_period is None:
            raise ValueError(f"Action kind is not debounced: {action.name}")

        loop = asyncio.get_running_loop()
        now = loop.time()
        key = self.element_key(action, context)

        entry = self._entries.get(key)
        if entry is None:
            entry = DebounceEntry(action.name, context, code, now)
            self._entries[key] = entry
            logger.debug(f"Debouncing {key} (quiet period {quiet_period}s)")
        else:
            entry.touch(context, code, now)
            if entry.timer and not entry.timer.done():
                entry.timer.cancel()

        entry.timer = loop.create_task(self._settle(key, entry, quiet_period, now))
        return code

    async def _settle(
        self, key: str, entry: DebounceEntry, quiet_period: float, scheduled_at: float
    ) -> None:
        await asyncio.sleep(quiet_period)

        if self._entries.get(key) is not entry or entry.state is not DebounceState.PENDING_COMPLETION:
            return
        if entry.last_timestamp != scheduled_at:
            # A newer occurrence owns a later check
            return
        self._complete(key, entry)

    def _complete(self, key: str, entry: DebounceEntry) -> None:
        self._entries.pop(key, None)
        entry.state = DebounceState.IDLE
        entry.timer = None

        completion = self.completion_key(entry.kind, entry.first_start_time)
        self._completion_keys.append(completion)
        logger.debug(f"Input settled for {key}, dispatching {completion}")
        self.enhancer.start_enhancement(
            entry.latest_code,
            entry.latest_context.action,
            entry.latest_context,
            action_key=completion,
        )

    def flush(self) -> int:
        """
        Dispatch every waiting entry now, without waiting for quiet periods.

        Used when recording ends. Returns the number of dispatched entries.
        """
        flushed = 0
        for key, entry in list(self._entries.items()):
            if entry.timer and not entry.timer.done():
                entry.timer.cancel()
            self._complete(key, entry)
            flushed += 1
        if flushed:
            logger.debug(f"Flushed {flushed} debounced actions")
        return flushed

    def cancel_all(self) -> None:
        """Drop every waiting entry without dispatching it."""
        for entry in self._entries.values():
            if entry.timer and not entry.timer.done():
                entry.timer.cancel()
            entry.state = DebounceState.IDLE
        self._entries.clear()
