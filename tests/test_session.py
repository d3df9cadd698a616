"""Tests for the per-recording-session entry point."""

import asyncio

import pytest

from codegen_enhancer.config import LLMConfig
from codegen_enhancer.session import EnhancementSession

SCRIPT = "await page.goto('/');\nawait page.locator('#a').click();"


@pytest.mark.asyncio
async def test_disabled_session_passes_code_through(make_provider, make_context):
    provider = make_provider("```js\nnever();\n```")
    session = EnhancementSession(LLMConfig(), provider=provider)
    context = make_context({"name": "click", "selector": "#a"})

    assert session.enabled is False
    assert await session.enhance_action("original", context.action, context) == "original"
    assert await session.enhance_complete_script(SCRIPT) == SCRIPT
    provider.generate.assert_not_called()


@pytest.mark.asyncio
async def test_click_is_enhanced_inline(enabled_config, make_provider, make_context):
    provider = make_provider("```js\nawait page.click('#submit');\n```")
    context = make_context({"name": "click", "selector": "#submit"}, start_time=1000)

    async with EnhancementSession(enabled_config, provider=provider) as session:
        result = await session.enhance_action("await page.locator('#submit').click();", context.action, context)

    assert result == "await page.click('#submit');"


@pytest.mark.asyncio
async def test_screenshot_and_empty_code_are_skipped(enabled_config, make_provider, make_context):
    provider = make_provider("```js\nnever();\n```")
    session = EnhancementSession(enabled_config, provider=provider)
    screenshot = make_context(
        {"name": "screenshot", "selector": "body", "options": {"path": "shot.png"}}
    )
    click = make_context({"name": "click", "selector": "#a"})

    assert await session.enhance_action("await page.screenshot();", screenshot.action, screenshot) == (
        "await page.screenshot();"
    )
    assert await session.enhance_action("   ", click.action, click) == "   "
    provider.generate.assert_not_called()
    await session.close()


@pytest.mark.asyncio
async def test_fill_returns_immediately_and_settles_later(enabled_config, make_provider, make_context):
    provider = make_provider("```js\nawait page.getByLabel('Name').fill('Ada');\n```")
    session = EnhancementSession(enabled_config, provider=provider)
    context = make_context({"name": "fill", "selector": "#name", "text": "Ada"}, start_time=42)

    code = "await page.fill('#name', 'Ada');"
    assert await session.enhance_action(code, context.action, context) == code
    assert provider.generate.await_count == 0

    await asyncio.sleep(0.2)
    await session.wait_for_all_pending()

    assert session.completed_fragments() == {
        "fill_completed_42": "await page.getByLabel('Name').fill('Ada');"
    }
    await session.close()


@pytest.mark.asyncio
async def test_script_pass_flushes_debounced_work_first(make_provider, make_context):
    """Unsettled fills are dispatched and awaited before the script call."""
    config = LLMConfig.model_validate({"enhancer": {"enabled": True, "fillQuietPeriod": 60}})
    provider = make_provider("```js\nfilled();\n```", f"```js\n{SCRIPT}\n```")
    session = EnhancementSession(config, provider=provider)
    context = make_context({"name": "fill", "selector": "#q", "text": "x"}, start_time=7)

    await session.enhance_action("await page.fill('#q', 'x');", context.action, context)
    result = await session.enhance_complete_script(SCRIPT)

    assert result == SCRIPT
    assert provider.generate.await_count == 2
    first_prompt = provider.generate.await_args_list[0].args[0][1]["content"]
    assert "await page.fill('#q', 'x');" in first_prompt
    assert session.completed_fragments() == {"fill_completed_7": "filled();"}
    await session.close()


@pytest.mark.asyncio
async def test_script_temperature_comes_from_provider_block(make_provider):
    config = LLMConfig.model_validate(
        {"enhancer": {"enabled": True}, "ollama": {"completeScriptTemperature": 0.05}}
    )
    provider = make_provider(f"```js\n{SCRIPT}\n```")

    async with EnhancementSession(config, provider=provider) as session:
        await session.enhance_complete_script(SCRIPT)

    assert provider.generate.await_args.args[1] == {"temperature": 0.05}


@pytest.mark.asyncio
async def test_close_cancels_work_and_shuts_provider_down(enabled_config, make_provider, make_context):
    provider = make_provider("late", delay=1.0)
    session = EnhancementSession(enabled_config, provider=provider)
    fill = make_context({"name": "fill", "selector": "#q", "text": "x"})
    click = make_context({"name": "click", "selector": "#a"})

    await session.enhance_action("fill", fill.action, fill)
    session.action_enhancer.start_enhancement("click", click.action, click)

    await session.close()
    await session.close()
    await asyncio.sleep(0.01)

    assert session.enabled is False
    assert session.debouncer.tracked_keys == []
    assert session.action_enhancer.pending_count == 0
    provider.shutdown.assert_awaited_once()
    assert await session.enhance_action("after", click.action, click) == "after"
