from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator

from morpheus_pipeline.schemas._base import (
    ArtifactModel,
    choice,
    flex_id,
    object_or_empty,
)

SelectedModel = Literal["gemini-3-flash", "gemini-3-pro"]


class FewShotExample(ArtifactModel):
    input: str
    output: str


class PromptStrategy(ArtifactModel):
    system_prompt: str
    few_shot_examples: list[FewShotExample]
    output_format: str


class DataFlowStep(ArtifactModel):
    step: int | float
    name: str
    input: str
    output: str
    description: str


class StateManagementPlan(ArtifactModel):
    type: Literal["stateless", "session", "persistent"]
    storage: str

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> Any:
        return choice(v, ("stateless", "session", "persistent"), "stateless")


class ToolSpec(ArtifactModel):
    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)

    @field_validator("parameters", mode="before")
    @classmethod
    def _coerce_parameters(cls, v: Any) -> dict[str, Any]:
        return object_or_empty(v)


class ConversationNode(ArtifactModel):
    id: str
    type: Literal["start", "process", "decision", "end"]
    next: list[str]

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> Any:
        return choice(v, ("start", "process", "decision", "end"), "process")


class RetryPolicySpec(ArtifactModel):
    max_retries: int | float = 3
    backoff_ms: int | float = 1000

    @field_validator("max_retries", mode="before")
    @classmethod
    def _default_max_retries(cls, v: Any) -> Any:
        return v if _is_number(v) else 3

    @field_validator("backoff_ms", mode="before")
    @classmethod
    def _default_backoff(cls, v: Any) -> Any:
        return v if _is_number(v) and v > 0 else 1000


class ErrorStrategy(ArtifactModel):
    retry_policy: RetryPolicySpec
    fallback_behavior: str


class AgentRole(ArtifactModel):
    role: str
    model: str


class MultiAgentStrategy(ArtifactModel):
    agents: list[AgentRole]
    coordination_pattern: str


class IntegrationSpec(ArtifactModel):
    name: str
    endpoint: str
    auth_flow: str
    rate_limit: int | float | None = None

    @field_validator("rate_limit", mode="before")
    @classmethod
    def _parse_rate_limit(cls, v: Any) -> float | None:
        if _is_number(v):
            return v
        if isinstance(v, str):
            try:
                return float(v.strip())
            except ValueError:
                return None
        return None


class Tradeoff(ArtifactModel):
    decision: str
    pros: list[str]
    cons: list[str]


class ArchitectureDoc(ArtifactModel):
    """Architecture artifact derived from an :class:`AgentSpec`."""

    id: str
    agent_spec_id: str
    selected_model: SelectedModel
    prompt_strategy: PromptStrategy
    data_flow: list[DataFlowStep]
    state_management: StateManagementPlan
    tools: list[ToolSpec]
    conversation_flow: list[ConversationNode]
    error_handling: ErrorStrategy
    multi_agent_strategy: MultiAgentStrategy | None = None
    integration_specs: list[IntegrationSpec] | None = None
    tradeoffs: list[Tradeoff] | None = None

    @field_validator("id", "agent_spec_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return flex_id(v)

    @field_validator("selected_model", mode="before")
    @classmethod
    def _coerce_model(cls, v: Any) -> Any:
        return choice(v, ("gemini-3-flash", "gemini-3-pro"), "gemini-3-flash")


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)
