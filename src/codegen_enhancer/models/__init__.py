"""Data models for the codegen enhancer."""

from .actions import (
    Action,
    ActionName,
    ClickAction,
    ElementPaths,
    FillAction,
    NavigateAction,
    PressAction,
    TargetInfo,
    parse_action,
)
from .context import ActionContext, FrameDescription

__all__ = [
    "Action",
    "ActionName",
    "ActionContext",
    "ClickAction",
    "ElementPaths",
    "FillAction",
    "FrameDescription",
    "NavigateAction",
    "PressAction",
    "TargetInfo",
    "parse_action",
]
