"""Models for recorded user actions as emitted by the browser recorder."""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

ActionName = Literal[
    "check",
    "click",
    "closePage",
    "fill",
    "navigate",
    "openPage",
    "press",
    "select",
    "uncheck",
    "setInputFiles",
    "assertText",
    "assertValue",
    "assertChecked",
    "assertVisible",
    "assertSnapshot",
    "screenshot",
    "extractText",
]


class Point(BaseModel):
    """Pixel coordinates relative to the element."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class ElementPaths(BaseModel):
    """Alternative element locators captured by the recorder."""

    model_config = ConfigDict(extra="allow", frozen=True)

    xpath: Optional[str] = Field(None, description="Relative XPath")
    fullXPath: Optional[str] = Field(None, description="Absolute XPath from the document root")
    jsPath: Optional[str] = Field(None, description="document.querySelector(...) expression")
    outerHTML: Optional[str] = Field(None, description="Truncated outer HTML sample")


class TargetInfo(BaseModel):
    """DOM metadata about the element an action targeted."""

    model_config = ConfigDict(extra="allow", frozen=True)

    tagName: Optional[str] = Field(None, description="HTML tag name (e.g., 'button', 'input')")
    elementClasses: Optional[str] = Field(None, description="Space separated class list")
    elementAttributes: Optional[Dict[str, str]] = Field(None, description="Element attributes")
    elementDimensions: Optional[Dict[str, float]] = Field(
        None, description="Element size {width, height}"
    )
    relativePosition: Optional[Dict[str, float]] = Field(
        None, description="Click position relative to the element, in percent"
    )
    inputType: Optional[str] = Field(None, description="type attribute for inputs")
    optionsCount: Optional[int] = Field(None, description="Number of options for selects")
    paths: Optional[ElementPaths] = Field(None, description="Alternative locators")


class ActionBase(BaseModel):
    """Fields shared by every recorded action."""

    model_config = ConfigDict(extra="allow", frozen=True)

    signals: List[Dict[str, Any]] = Field(default_factory=list, description="Navigation/popup/dialog signals")
    selector: Optional[str] = Field(None, description="Recorder selector for the target element")
    targetInfo: Optional[TargetInfo] = Field(None, description="DOM metadata for the target")


class ClickAction(ActionBase):
    name: Literal["click"] = "click"
    selector: str
    button: Literal["left", "middle", "right"] = "left"
    modifiers: int = 0
    clickCount: int = 1
    position: Optional[Point] = None


class CheckAction(ActionBase):
    name: Literal["check"] = "check"
    selector: str


class UncheckAction(ActionBase):
    name: Literal["uncheck"] = "uncheck"
    selector: str


class FillAction(ActionBase):
    name: Literal["fill"] = "fill"
    selector: str
    text: str


class PressAction(ActionBase):
    name: Literal["press"] = "press"
    selector: str
    key: str
    modifiers: int = 0


class SelectAction(ActionBase):
    name: Literal["select"] = "select"
    selector: str
    options: List[str] = Field(default_factory=list)


class SetInputFilesAction(ActionBase):
    name: Literal["setInputFiles"] = "setInputFiles"
    selector: str
    files: List[str] = Field(default_factory=list)


class NavigateAction(ActionBase):
    name: Literal["navigate"] = "navigate"
    url: str


class OpenPageAction(ActionBase):
    name: Literal["openPage"] = "openPage"
    url: str


class ClosePageAction(ActionBase):
    name: Literal["closePage"] = "closePage"


class AssertTextAction(ActionBase):
    name: Literal["assertText"] = "assertText"
    selector: str
    text: str
    substring: bool = False


class AssertValueAction(ActionBase):
    name: Literal["assertValue"] = "assertValue"
    selector: str
    value: str


class AssertCheckedAction(ActionBase):
    name: Literal["assertChecked"] = "assertChecked"
    selector: str
    checked: bool


class AssertVisibleAction(ActionBase):
    name: Literal["assertVisible"] = "assertVisible"
    selector: str


class AssertSnapshotAction(ActionBase):
    name: Literal["assertSnapshot"] = "assertSnapshot"
    selector: str
    snapshot: str


class ScreenshotOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    fullPage: bool = False


class ScreenshotAction(ActionBase):
    name: Literal["screenshot"] = "screenshot"
    selector: str
    options: ScreenshotOptions


class ExtractTextAction(ActionBase):
    name: Literal["extractText"] = "extractText"
    selector: str
    variableName: str
    extractedContent: str = ""
    contentType: Literal["text", "value"] = "text"


Action = Annotated[
    Union[
        ClickAction,
        CheckAction,
        UncheckAction,
        FillAction,
        PressAction,
        SelectAction,
        SetInputFilesAction,
        NavigateAction,
        OpenPageAction,
        ClosePageAction,
        AssertTextAction,
        AssertValueAction,
        AssertCheckedAction,
        AssertVisibleAction,
        AssertSnapshotAction,
        ScreenshotAction,
        ExtractTextAction,
    ],
    Field(discriminator="name"),
]

_action_adapter: TypeAdapter[Action] = TypeAdapter(Action)


def parse_action(data: Dict[str, Any]) -> Action:
    """Validate a raw recorder payload into the matching action model."""
    return _action_adapter.validate_python(data)
