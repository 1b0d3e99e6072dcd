from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from morpheus_pipeline.core.constants import STAGE_ORDER, BuildStatus, PipelineStage
from morpheus_pipeline.core.types import TokenMetadata
from morpheus_pipeline.schemas.agent_spec import AdvancedOptions, AgentSpec
from morpheus_pipeline.schemas.architecture_doc import ArchitectureDoc
from morpheus_pipeline.schemas.code_bundle import CodeBundle
from morpheus_pipeline.schemas.deployment_result import DeploymentResult
from morpheus_pipeline.schemas.generated_ui import GeneratedUI

_ARTIFACT_FIELDS: dict[PipelineStage, str] = {
    PipelineStage.ANALYZING: "agent_spec",
    PipelineStage.DESIGNING: "architecture_doc",
    PipelineStage.GENERATING: "code_bundle",
    PipelineStage.DEPLOYING: "deployment_result",
    PipelineStage.CREATING_UI: "generated_ui",
}


class BuildError(BaseModel):
    stage: PipelineStage
    message: str


class Build(BaseModel):
    """State of one pipeline run. Mutated only by the orchestrator running it."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    description: str
    options: AdvancedOptions | None = None
    current_stage: PipelineStage | None = None
    cancelled: bool = False
    error: BuildError | None = None
    agent_spec: AgentSpec | None = None
    architecture_doc: ArchitectureDoc | None = None
    code_bundle: CodeBundle | None = None
    deployment_result: DeploymentResult | None = None
    generated_ui: GeneratedUI | None = None
    token_usage: TokenMetadata = Field(default_factory=TokenMetadata)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def artifact_for(self, stage: PipelineStage) -> Any:
        return getattr(self, _ARTIFACT_FIELDS[stage])

    def store_artifact(self, stage: PipelineStage, artifact: Any) -> None:
        setattr(self, _ARTIFACT_FIELDS[stage], artifact)

    @property
    def is_complete(self) -> bool:
        return all(self.artifact_for(stage) is not None for stage in STAGE_ORDER)

    @property
    def status(self) -> BuildStatus:
        if self.cancelled:
            return BuildStatus.CANCELLED
        if self.error is not None:
            return BuildStatus.FAILED
        if self.is_complete:
            return BuildStatus.COMPLETED
        if self.current_stage is None:
            return BuildStatus.PENDING
        return BuildStatus.RUNNING

    def summary(self) -> dict[str, Any]:
        """JSON-friendly view with camelCase artifacts."""
        return {
            "id": self.id,
            "description": self.description,
            "status": str(self.status),
            "currentStage": str(self.current_stage) if self.current_stage else None,
            "cancelled": self.cancelled,
            "error": self.error.model_dump(mode="json") if self.error else None,
            "artifacts": {
                str(stage): artifact.to_wire()
                for stage in STAGE_ORDER
                if (artifact := self.artifact_for(stage)) is not None
            },
            "tokenUsage": self.token_usage.model_dump(by_alias=True),
            "createdAt": self.created_at.isoformat(),
        }
