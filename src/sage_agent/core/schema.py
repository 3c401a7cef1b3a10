"""
Schema definitions for selector <-> pipeline <-> tool messages.

These data models serve as the contract between the language model, the orchestration pipeline,
and individual tools.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.
"""

from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class ToolParameter(BaseModel):
    """One entry of a tool's ordered parameter schema."""

    name: str = Field(..., description="Parameter name, also usable in 'name=value' tokens")
    type: str = Field("string", description="Semantic type shown to the model")
    description: str = ""
    required: bool = True


class PlanKind(str, Enum):
    """The closed set of outcomes the selector can produce for one subquery."""

    DIRECT = "direct"
    TOOLS = "tools"
    NEEDS_INFO = "needs_info"
    REJECTED = "rejected"


class SubqueryPlan(BaseModel):
    """
    The selector's decision for a single subquery.

    Accepts both the wire names the prompt asks the model for (``success``, ``response``,
    ``additional_info_required``) and the attribute names used in Python.
    """

    model_config = ConfigDict(populate_by_name=True)

    subquery: str = ""
    self_answerable: Optional[bool] = Field(
        None, validation_alias=AliasChoices("self_answerable", "success")
    )
    selected_tools: Optional[List[str]] = None
    tool_arguments: Optional[List[Any]] = None
    needs_additional_info: bool = False
    missing_info: Optional[List[str]] = Field(
        None, validation_alias=AliasChoices("missing_info", "additional_info_required")
    )
    direct_response: Optional[str] = Field(
        None, validation_alias=AliasChoices("direct_response", "response")
    )

    @field_validator("selected_tools", mode="before")
    @classmethod
    def _wrap_tool_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value] if value.strip() else None
        return value

    @field_validator("tool_arguments", "missing_info", mode="before")
    @classmethod
    def _wrap_scalar(cls, value: Any) -> Any:
        if value is None or isinstance(value, list):
            return value
        return [value]

    @field_validator("direct_response", mode="before")
    @classmethod
    def _blank_response_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> "SubqueryPlan":
        outcomes = [
            self.direct_response is not None,
            bool(self.selected_tools),
            self.needs_additional_info,
        ]
        if sum(outcomes) != 1:
            raise ValueError(
                "a plan must set exactly one of response, selected_tools or "
                f"needs_additional_info (subquery={self.subquery!r})"
            )
        return self

    @property
    def kind(self) -> PlanKind:
        """Which of the three outcomes this plan represents."""
        if self.selected_tools:
            return PlanKind.TOOLS
        if self.needs_additional_info:
            return PlanKind.NEEDS_INFO
        return PlanKind.DIRECT


class PlanRejection(BaseModel):
    """A selector entry that failed validation, kept in place so its siblings still run."""

    subquery: str = ""
    error: str

    @property
    def kind(self) -> PlanKind:
        return PlanKind.REJECTED


PlannedSubquery = Union[SubqueryPlan, PlanRejection]


class AnswerItem(BaseModel):
    """One element of the final answer list returned to the caller."""

    reasoning: str = ""
    response: Any = ""
    status: Literal["success", "failure"] = "success"
    query: str = ""
    errors: List[Any] = Field(default_factory=list)

    @field_validator("reasoning", "query", mode="before")
    @classmethod
    def _null_text_is_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if not isinstance(value, str):
            return str(value)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() == "success":
            return "success"
        if value is True:
            return "success"
        return "failure"

    @field_validator("errors", mode="before")
    @classmethod
    def _errors_as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return [value]
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Return the plain mapping handed back to callers."""
        return self.model_dump()
