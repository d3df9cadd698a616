"""Prompt assembly and response parsing for enhancement calls."""

import json
import re
from typing import Any, Dict, Tuple

from .config import PromptTemplates, process_template
from .models import Action, ActionContext
from .types import ChatMessages, system_message, user_message

# targetInfo fields surfaced in the "Element Information" block
SUMMARY_FIELDS = ("tagName", "elementClasses", "elementAttributes")
PATH_FIELDS = ("xpath", "fullXPath", "jsPath", "outerHTML")

CODE_LANGUAGE_TAGS = frozenset({"", "javascript", "js", "typescript", "ts", "python", "py"})

# Fences are consumed pairwise so a closing fence is never read as an opener
FENCED_BLOCK_PATTERN = re.compile(r"```([\w+-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)


def format_start_time(start_time: float) -> str:
    """Render a recorder timestamp the way the recorder prints it."""
    if float(start_time).is_integer():
        return str(int(start_time))
    return repr(float(start_time))


def action_key(action: Action, context: ActionContext) -> str:
    """Identity of one logical action occurrence: name + start time."""
    return f"{action.name}_{format_start_time(context.startTime)}"


def extract_code_block(response: str) -> str:
    """
    Return the first fenced source-code block of ``response``, trimmed.

    Falls back to the whole response, trimmed, when there is no such block.
    """
    for match in FENCED_BLOCK_PATTERN.finditer(response):
        if match.group(1).lower() in CODE_LANGUAGE_TAGS:
            return match.group(2).strip()
    return response.strip()


def build_element_context(target_info: Dict[str, Any], paths: Dict[str, Any]) -> str:
    """Free-text element summary appended to the per-action prompt."""
    attributes = json.dumps(target_info.get("elementAttributes") or {})
    lines = [
        "",
        "Element Information:",
        f"- Element Tag: {target_info.get('tagName') or 'Unknown'}",
        f"- Element Classes: {target_info.get('elementClasses') or 'None'}",
        f"- Element Attributes: {attributes}",
        f"- XPath: {paths.get('xpath') or 'N/A'}",
        f"- Full XPath: {paths.get('fullXPath') or 'N/A'}",
        f"- JS Path: {paths.get('jsPath') or 'N/A'}",
        f"- OuterHTML: {paths.get('outerHTML') or 'N/A'}",
        "",
    ]
    return "\n".join(lines)


def prepare_action_payload(action: Action) -> Tuple[Dict[str, Any], str]:
    """
    Split an action into the JSON body and the element-context text.

    Pixel coordinates are dropped entirely. Fields shown in the element
    context are removed from the JSON body; empty containers left behind
    are removed too.
    """
    data = action.model_dump(mode="json", exclude_none=True)
    data.pop("position", None)

    target_info = data.pop("targetInfo", None)
    if not isinstance(target_info, dict):
        return data, ""

    target_info = dict(target_info)
    target_info.pop("relativePosition", None)
    paths = dict(target_info.pop("paths", None) or {})

    element_context = ""
    has_summary = any(target_info.get(field) for field in SUMMARY_FIELDS)
    has_paths = any(paths.get(field) for field in PATH_FIELDS)
    if has_summary or has_paths:
        element_context = build_element_context(target_info, paths)
        for field in SUMMARY_FIELDS:
            target_info.pop(field, None)
        for field in PATH_FIELDS:
            paths.pop(field, None)

    if paths:
        target_info["paths"] = paths
    if target_info:
        data["targetInfo"] = target_info
    return data, element_context


def build_action_messages(prompts: PromptTemplates, code: str, action: Action) -> ChatMessages:
    """System + user messages for one action fragment."""
    payload, element_context = prepare_action_payload(action)
    user_prompt = process_template(
        prompts.user_prompt_template,
        {
            "actionData": json.dumps(payload, indent=2),
            "elementContext": element_context,
            "generatedCode": code,
        },
    )
    return [system_message(prompts.system_prompt), user_message(user_prompt)]


def build_script_messages(prompts: PromptTemplates, script: str) -> ChatMessages:
    """System + user messages for the whole-script pass."""
    user_prompt = process_template(
        prompts.complete_script_user_prompt_template,
        {"completeScript": script},
    )
    return [system_message(prompts.complete_script_system_prompt), user_message(user_prompt)]
