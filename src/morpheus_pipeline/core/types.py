from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from morpheus_pipeline.core.constants import (
    ChunkKind,
    EventKind,
    ModelTier,
    ModelTool,
    PipelineStage,
    ResponseMode,
    ThinkingDepth,
)


class TokenMetadata(BaseModel):
    """Token usage reported by the model API for one call."""

    prompt_token_count: int = Field(default=0, alias="promptTokenCount")
    candidates_token_count: int = Field(default=0, alias="candidatesTokenCount")
    thoughts_token_count: int = Field(default=0, alias="thoughtsTokenCount")
    total_token_count: int = Field(default=0, alias="totalTokenCount")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def from_usage(cls, data: dict[str, Any] | None) -> TokenMetadata:
        """Create from a ``usageMetadata`` block, treating missing counts as zero."""
        data = data or {}
        return cls.model_validate({
            "promptTokenCount": data.get("promptTokenCount") or 0,
            "candidatesTokenCount": data.get("candidatesTokenCount") or 0,
            "thoughtsTokenCount": data.get("thoughtsTokenCount") or 0,
            "totalTokenCount": data.get("totalTokenCount") or 0,
        })

    def __add__(self, other: TokenMetadata) -> TokenMetadata:
        return TokenMetadata(
            prompt_token_count=self.prompt_token_count + other.prompt_token_count,
            candidates_token_count=self.candidates_token_count + other.candidates_token_count,
            thoughts_token_count=self.thoughts_token_count + other.thoughts_token_count,
            total_token_count=self.total_token_count + other.total_token_count,
        )


class ModelRequest(BaseModel):
    """One outbound request to the model-calling collaborator."""

    prompt: str
    purpose: str = ""
    """Short label of the calling task, e.g. ``"analyze_requirements"``."""
    tier: ModelTier = ModelTier.PRO
    thinking_depth: ThinkingDepth | None = None
    """``None`` means the configured default for the tier."""
    response_mode: ResponseMode = ResponseMode.JSON
    tools: list[ModelTool] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ModelAnswer(BaseModel):
    """Parsed answer of one model call together with the usage it reported."""

    value: Any = None
    token_metadata: TokenMetadata | None = None

    model_config = ConfigDict(frozen=True)


class StreamChunk(BaseModel):
    """A single item of a gateway or stage-worker stream.

    ``RESULT`` and ``ERROR`` chunks are terminal; an ``ERROR`` chunk may carry
    the classified exception in ``error``.
    """

    kind: ChunkKind
    content: Any = None
    token_metadata: TokenMetadata | None = None
    error: Exception | None = Field(default=None, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def thinking(cls, content: Any) -> StreamChunk:
        return cls(kind=ChunkKind.THINKING, content=content)

    @classmethod
    def result(
        cls, content: Any, token_metadata: TokenMetadata | None = None
    ) -> StreamChunk:
        return cls(kind=ChunkKind.RESULT, content=content, token_metadata=token_metadata)

    @classmethod
    def failure(cls, content: Any, error: Exception | None = None) -> StreamChunk:
        return cls(kind=ChunkKind.ERROR, content=content, error=error)

    @property
    def is_terminal(self) -> bool:
        return self.kind in (ChunkKind.RESULT, ChunkKind.ERROR)


class ProgressEvent(BaseModel):
    """An immutable, append-only record of pipeline progress for one build."""

    build_id: str
    stage: PipelineStage
    kind: EventKind
    data: Any = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    token_metadata: TokenMetadata | None = None

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """camelCase JSON view, as streamed to clients."""
        wire: dict[str, Any] = {
            "buildId": self.build_id,
            "stage": self.stage.value,
            "type": self.kind.value,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.token_metadata is not None:
            wire["tokenMetadata"] = self.token_metadata.model_dump(by_alias=True)
        return wire

    @property
    def message(self) -> str | None:
        """The ``message`` entry of ``data`` for error events, if any."""
        if isinstance(self.data, dict):
            value = self.data.get("message")
            return str(value) if value is not None else None
        return None
