"""LLM post-processing for recorded browser-automation code."""

from .action_cache import ActionEnhancer
from .config import LLMConfig, load_llm_config
from .debouncer import ActionDebouncer
from .script_gate import ScriptEnhancer
from .session import EnhancementSession

__all__ = [
    "ActionDebouncer",
    "ActionEnhancer",
    "EnhancementSession",
    "LLMConfig",
    "ScriptEnhancer",
    "load_llm_config",
]
