"""Morpheus pipeline: turn a product description into a deployed agent with a UI."""

from morpheus_pipeline.__version__ import __version__
from morpheus_pipeline.core.config import ModelClientConfig, PipelineConfig
from morpheus_pipeline.core.constants import (
    STAGE_ORDER,
    BuildStatus,
    ChunkKind,
    DeployProvider,
    EventKind,
    ModelTier,
    PipelineStage,
)
from morpheus_pipeline.core.exceptions import (
    APIError,
    AuthenticationError,
    BuildNotFoundError,
    ConfigurationError,
    DeploymentError,
    MorpheusError,
    NetworkError,
    OutputShapeError,
    PrerequisiteMissingError,
    RateLimitError,
    SchemaValidationError,
    StageError,
)
from morpheus_pipeline.core.types import (
    ModelRequest,
    ProgressEvent,
    StreamChunk,
    TokenMetadata,
)
from morpheus_pipeline.deploy import HttpDeployService, LocalDeployService
from morpheus_pipeline.gateway.backoff import BackoffClient
from morpheus_pipeline.gateway.gemini import GeminiGateway
from morpheus_pipeline.gateway.mock import MockModelGateway
from morpheus_pipeline.pipeline import Build, BuildRegistry, PipelineOrchestrator
from morpheus_pipeline.resilience.countdown import RateLimitCountdown
from morpheus_pipeline.resilience.retry import RetryPolicy
from morpheus_pipeline.storage import ArtifactStore, InMemoryArtifactStore
from morpheus_pipeline.validation import SchemaValidator, ValidationResult

__all__ = [
    "__version__",
    "APIError",
    "ArtifactStore",
    "AuthenticationError",
    "BackoffClient",
    "Build",
    "BuildNotFoundError",
    "BuildRegistry",
    "BuildStatus",
    "ChunkKind",
    "ConfigurationError",
    "DeployProvider",
    "DeploymentError",
    "EventKind",
    "GeminiGateway",
    "HttpDeployService",
    "InMemoryArtifactStore",
    "LocalDeployService",
    "MockModelGateway",
    "ModelClientConfig",
    "ModelRequest",
    "ModelTier",
    "MorpheusError",
    "NetworkError",
    "OutputShapeError",
    "PipelineConfig",
    "PipelineOrchestrator",
    "PipelineStage",
    "PrerequisiteMissingError",
    "ProgressEvent",
    "RateLimitCountdown",
    "RateLimitError",
    "RetryPolicy",
    "STAGE_ORDER",
    "SchemaValidationError",
    "SchemaValidator",
    "StageError",
    "StreamChunk",
    "TokenMetadata",
    "ValidationResult",
]
