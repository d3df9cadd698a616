"""Models describing where and when an action was recorded."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .actions import Action


class FrameDescription(BaseModel):
    """Page and frame chain the action happened in."""

    model_config = ConfigDict(frozen=True)

    pageAlias: str = Field("page", description="Variable name of the page in generated code")
    framePath: List[str] = Field(
        default_factory=list, description="Selectors of nested iframes, outermost first"
    )


class ActionContext(BaseModel):
    """A recorded action together with its origin and timing."""

    model_config = ConfigDict(frozen=True)

    action: Action = Field(..., description="The recorded action")
    frame: FrameDescription = Field(default_factory=FrameDescription, description="Originating frame")
    description: Optional[str] = Field(None, description="Human readable step description")
    startTime: float = Field(..., description="Recorder timestamp (ms) when the action started")
    endTime: Optional[float] = Field(None, description="Recorder timestamp (ms) when the action ended")
