from __future__ import annotations

from enum import StrEnum


class PipelineStage(StrEnum):
    ANALYZING = "analyzing"
    DESIGNING = "designing"
    GENERATING = "generating"
    DEPLOYING = "deploying"
    CREATING_UI = "creating-ui"


STAGE_ORDER: tuple[PipelineStage, ...] = (
    PipelineStage.ANALYZING,
    PipelineStage.DESIGNING,
    PipelineStage.GENERATING,
    PipelineStage.DEPLOYING,
    PipelineStage.CREATING_UI,
)


class EventKind(StrEnum):
    """Kinds of :class:`~morpheus_pipeline.core.types.ProgressEvent`."""

    PROGRESS = "progress"
    THINKING = "thinking"
    CODE = "code"
    TEST_RESULT = "test-result"
    COMPLETE = "complete"
    ERROR = "error"


class ChunkKind(StrEnum):
    """Kinds of chunks produced by model gateways and stage workers."""

    THINKING = "thinking"
    CODE = "code"
    TEST_RESULT = "test-result"
    TEXT = "text"
    RESULT = "result"
    ERROR = "error"


class ResponseMode(StrEnum):
    JSON = "json"
    TEXT = "text"


class ThinkingDepth(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ModelTier(StrEnum):
    # pro: deep reasoning stages, flash: generation stages
    PRO = "pro"
    FLASH = "flash"


class ModelTool(StrEnum):
    CODE_EXECUTION = "code_execution"
    SEARCH_GROUNDING = "search_grounding"


class ArtifactKind(StrEnum):
    """Artifact kinds checked by the schema validator."""

    AGENT_SPEC = "agent_spec"
    ARCHITECTURE_DOC = "architecture_doc"
    DEPLOYMENT_RESULT = "deployment_result"


class DeployProvider(StrEnum):
    RAILWAY = "railway"
    RENDER = "render"
    LOCAL = "local"


class DeploymentStatus(StrEnum):
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


class BuildStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
