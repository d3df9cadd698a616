"""Common type definitions for the codegen enhancer.

This module provides TypedDict definitions for the chat payloads exchanged
with LLM providers to avoid passing bare Dict[str, Any] around.
"""

from enum import Enum
from typing import Dict, List, TypedDict


class MessageRole(str, Enum):
    """Message role for chat-based LLMs."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(TypedDict):
    """One role-tagged chat message."""
    role: str
    content: str


class GenerateOptions(TypedDict, total=False):
    """Per-call sampling overrides."""
    temperature: float
    max_tokens: int


class OperationCounts(TypedDict):
    """Characteristic operation counts used by the script safety check."""
    interactions: int
    assertions: int
    navigations: int


# Ordered conversation sent to a provider
ChatMessages = List[ChatMessage]

# Action key -> enhanced code
CompletedFragments = Dict[str, str]


def system_message(content: str) -> ChatMessage:
    """Build a system message."""
    return {"role": MessageRole.SYSTEM.value, "content": content}


def user_message(content: str) -> ChatMessage:
    """Build a user message."""
    return {"role": MessageRole.USER.value, "content": content}
