"""Shared fixtures for codegen enhancer tests."""

import asyncio
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from codegen_enhancer.config import EnvironmentOverrides, LLMConfig
from codegen_enhancer.models import ActionContext, FrameDescription, parse_action
from codegen_enhancer.providers import LLMProvider

ENV_VARS = [name for name in EnvironmentOverrides.model_fields]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep real credentials, .env files and config files out of tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _make_context(
    action: Dict[str, Any],
    start_time: float = 1000,
    frame_path: Optional[List[str]] = None,
    description: Optional[str] = None,
) -> ActionContext:
    """Build an ActionContext from a raw recorder payload."""
    return ActionContext(
        action=parse_action(action),
        frame=FrameDescription(pageAlias="page", framePath=frame_path or []),
        description=description,
        startTime=start_time,
    )


def _make_provider(*responses: Any, delay: float = 0.0) -> MagicMock:
    """
    Mock provider whose ``generate`` returns ``responses`` in order.

    Exceptions in ``responses`` are raised instead of returned.
    """
    provider = MagicMock(spec=LLMProvider)
    queue = list(responses)

    async def generate(messages, options=None):
        if delay:
            await asyncio.sleep(delay)
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, BaseException):
            raise result
        return result

    provider.generate = AsyncMock(side_effect=generate)
    provider.shutdown = AsyncMock()
    return provider


@pytest.fixture
def enabled_config() -> LLMConfig:
    """Default config with enhancement switched on and short quiet periods."""
    return LLMConfig.model_validate(
        {
            "enhancer": {
                "enabled": True,
                "fillQuietPeriod": 0.05,
                "pressQuietPeriod": 0.05,
                "pendingTimeout": 5.0,
            }
        }
    )


@pytest.fixture
def make_context():
    """Factory fixture for ActionContext objects."""
    return _make_context


@pytest.fixture
def make_provider():
    """Factory fixture for mock providers."""
    return _make_provider
