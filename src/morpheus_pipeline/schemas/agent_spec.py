from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import Field, StrictBool, StrictInt, field_validator

from morpheus_pipeline.schemas._base import (
    ArtifactModel,
    choice,
    flex_id,
    object_or_empty,
)

InputType = Literal["text", "number", "boolean", "file", "select"]
Formality = Literal["casual", "neutral", "formal"]
Verbosity = Literal["concise", "balanced", "detailed"]

DEFAULT_MITIGATION = "Apply graceful error handling with user-friendly error message"


class InputField(ArtifactModel):
    name: str = Field(min_length=1)
    type: InputType
    required: StrictBool
    description: str
    validation: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> Any:
        return choice(v, ("text", "number", "boolean", "file", "select"), "text")


class OutputField(ArtifactModel):
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    description: str


class DataSource(ArtifactModel):
    name: str
    type: str
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def _coerce_config(cls, v: Any) -> dict[str, Any]:
        return object_or_empty(v)


class Integration(ArtifactModel):
    name: str
    type: str
    auth_type: str
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def _coerce_config(cls, v: Any) -> dict[str, Any]:
        return object_or_empty(v)


class EdgeCase(ArtifactModel):
    description: str = Field(min_length=1)
    mitigation: str = ""
    """Empty until the requirements stage fills in a default."""


class AgentPersonality(ArtifactModel):
    tone: str
    formality: Formality
    verbosity: Verbosity

    @field_validator("formality", mode="before")
    @classmethod
    def _coerce_formality(cls, v: Any) -> Any:
        return choice(v, ("casual", "neutral", "formal"), "neutral")

    @field_validator("verbosity", mode="before")
    @classmethod
    def _coerce_verbosity(cls, v: Any) -> Any:
        return choice(v, ("concise", "balanced", "detailed"), "balanced")


class AdvancedOptions(ArtifactModel):
    """Caller-supplied constraints for a build."""

    model_preference: Literal["flash", "pro"] | None = None
    max_response_time: Annotated[float, Field(gt=0)] | None = None
    """Milliseconds."""
    cost_constraint: Annotated[float, Field(gt=0)] | None = None
    integration_requirements: list[str] | None = None


class AgentSpec(ArtifactModel):
    """Requirements artifact: what the agent must do."""

    id: str
    core_purpose: str = Field(min_length=1)
    input_requirements: list[InputField] = Field(min_length=1)
    output_requirements: list[OutputField] = Field(min_length=1)
    data_sources: list[DataSource]
    integrations: list[Integration]
    edge_cases: list[EdgeCase]
    personality: AgentPersonality
    communication_style: str
    complexity_score: StrictInt = Field(ge=1, le=10)
    inferred_fields: list[str]
    advanced_options: AdvancedOptions | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return flex_id(v)
