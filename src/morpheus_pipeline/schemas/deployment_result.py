from __future__ import annotations

from typing import Annotated, Any

from pydantic import Field, StrictBool, field_validator

from morpheus_pipeline.core.constants import DeploymentStatus, DeployProvider
from morpheus_pipeline.schemas._base import ArtifactModel, choice, flex_id


class DeploymentResult(ArtifactModel):
    """Where and how a code bundle was deployed."""

    id: str
    code_bundle_id: str
    provider: DeployProvider
    status: DeploymentStatus
    endpoint: str
    health_check_passed: StrictBool
    container_image: str | None = None
    env_vars: list[str]
    deployment_time: Annotated[float, Field(ge=0)]
    """Milliseconds."""
    fallback_used: StrictBool
    local_instructions: str | None = None

    @field_validator("id", "code_bundle_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return flex_id(v)

    @field_validator("provider", mode="before")
    @classmethod
    def _coerce_provider(cls, v: Any) -> Any:
        return choice(v, [p.value for p in DeployProvider], DeployProvider.LOCAL.value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, v: Any) -> Any:
        return choice(
            v, [s.value for s in DeploymentStatus], DeploymentStatus.STOPPED.value
        )
