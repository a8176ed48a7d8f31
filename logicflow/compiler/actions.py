"""
Action Verbs - Closed set of typed action variants.
The editor stores actions as an open `type` string plus a params dict;
parse_action() maps that onto one variant per verb, with UnknownAction
as the explicit fallback. Both the code generator's template table and the
interpreter's effect table are keyed by these classes.
"""

import math
import logging
from typing import Optional, Dict, List, Any, Type
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ActionBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    verb: str = ""


# ── Variables ─────────────────────────────────────────────────────


class SetVariableAction(ActionBase):
    verb: str = "set-variable"
    variable_id: Optional[str] = Field(default=None, alias="variableId")
    value: Any = None
    source_variable_id: Optional[str] = Field(default=None, alias="sourceVariableId")


# ── Host / UI ─────────────────────────────────────────────────────


class AlertAction(ActionBase):
    verb: str = "alert"
    message: Any = "Alert!"


class NavigateAction(ActionBase):
    verb: str = "navigate"
    url: str = ""
    target: str = "_blank"


class ConsoleLogAction(ActionBase):
    verb: str = "console-log"
    message: Any = ""


# ── Element ───────────────────────────────────────────────────────


class ToggleClassAction(ActionBase):
    verb: str = "toggle-class"
    class_name: str = Field(default="", alias="className")


class AddClassAction(ActionBase):
    verb: str = "add-class"
    class_name: str = Field(default="", alias="className")


class RemoveClassAction(ActionBase):
    verb: str = "remove-class"
    class_name: str = Field(default="", alias="className")


class SetAttributeAction(ActionBase):
    verb: str = "set-attribute"
    attribute: str = "data-value"
    value: Any = ""


class RemoveAttributeAction(ActionBase):
    verb: str = "remove-attribute"
    attribute: str = ""


class SetStyleAction(ActionBase):
    verb: str = "set-style"
    style_property: str = Field(default="display", alias="property")
    value: Any = ""


class SetTextAction(ActionBase):
    verb: str = "set-text"
    text: Any = ""


class SetHtmlAction(ActionBase):
    verb: str = "set-html"
    html: Any = ""


class FocusAction(ActionBase):
    verb: str = "focus"


class BlurAction(ActionBase):
    verb: str = "blur"


class ScrollToAction(ActionBase):
    verb: str = "scroll-to"


# ── Awaited effects ───────────────────────────────────────────────


class DelayAction(ActionBase):
    verb: str = "delay"
    ms: Optional[float] = None  # None → settings.default_delay_ms

    @field_validator("ms")
    @classmethod
    def validate_finite(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not math.isfinite(v):
            raise ValueError("delay must be a finite number of milliseconds")
        return v


class FetchAction(ActionBase):
    verb: str = "fetch"
    url: str = ""
    method: str = "GET"
    result_variable: Optional[str] = Field(default=None, alias="resultVariable")


# ── Host code ─────────────────────────────────────────────────────


class CustomCodeAction(ActionBase):
    """Author-written JavaScript, emitted verbatim into generated handlers."""
    verb: str = "custom-code"
    code: str = ""


# ── Fallback ──────────────────────────────────────────────────────


class UnknownAction(ActionBase):
    """A verb this engine does not know, or params that do not fit their verb."""
    verb: str = "unknown"
    raw_type: str = ""
    params: Dict[str, Any] = Field(default_factory=dict)
    reason: str = "unknown verb"


ACTION_TYPES: Dict[str, Type[ActionBase]] = {
    "set-variable": SetVariableAction,
    "alert": AlertAction,
    "navigate": NavigateAction,
    "console-log": ConsoleLogAction,
    "toggle-class": ToggleClassAction,
    "add-class": AddClassAction,
    "remove-class": RemoveClassAction,
    "set-attribute": SetAttributeAction,
    "remove-attribute": RemoveAttributeAction,
    "set-style": SetStyleAction,
    "set-text": SetTextAction,
    "set-html": SetHtmlAction,
    "focus": FocusAction,
    "blur": BlurAction,
    "scroll-to": ScrollToAction,
    "delay": DelayAction,
    "fetch": FetchAction,
    "custom-code": CustomCodeAction,
}

ALL_VARIANTS: List[Type[ActionBase]] = list(ACTION_TYPES.values()) + [UnknownAction]


def _clean_params(params: Dict[str, Any]) -> Dict[str, Any]:
    # Editors store "not set" as null or an empty string; both mean "use the default".
    return {
        k: v for k, v in params.items()
        if k != "verb" and v is not None and not (isinstance(v, str) and v == "" and k != "value")
    }


def parse_action(action_type: str, params: Optional[Dict[str, Any]] = None) -> ActionBase:
    """Map an editor (type, params) pair onto its typed variant. Never raises."""
    params = dict(params or {})
    model_cls = ACTION_TYPES.get(action_type or "")
    if model_cls is None:
        return UnknownAction(raw_type=str(action_type or ""), params=params)

    try:
        return model_cls(**_clean_params(params))
    except ValidationError as e:
        logger.debug(f"[ACTIONS] Invalid params for '{action_type}': {e.error_count()} error(s)")
        return UnknownAction(
            raw_type=action_type,
            params=params,
            reason=f"invalid params for {action_type}",
        )
