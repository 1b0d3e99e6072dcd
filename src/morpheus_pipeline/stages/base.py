"""Shared machinery for the pipeline stage workers.

A stage worker is an async generator of :class:`StreamChunk`: any number of
``thinking``/``code``/``test-result`` chunks, then exactly one terminal
``result`` or ``error`` chunk.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Callable, ClassVar, TypeVar

import structlog

from morpheus_pipeline.core.config import PipelineConfig
from morpheus_pipeline.core.constants import ChunkKind, PipelineStage
from morpheus_pipeline.core.exceptions import SchemaValidationError
from morpheus_pipeline.core.types import ModelRequest, StreamChunk, TokenMetadata
from morpheus_pipeline.gateway.base import ModelGateway
from morpheus_pipeline.validation.validator import (
    FieldError,
    SchemaValidator,
    ValidationResult,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def add_usage(
    total: TokenMetadata | None, metadata: TokenMetadata | None
) -> TokenMetadata | None:
    if metadata is None:
        return total
    return metadata if total is None else total + metadata


class Terminal:
    """Holder for the terminal chunk of a forwarded gateway stream."""

    def __init__(self) -> None:
        self.chunk: StreamChunk | None = None

    @property
    def result(self) -> Any:
        return self.chunk.content if self.chunk is not None else None

    @property
    def token_metadata(self) -> TokenMetadata | None:
        return self.chunk.token_metadata if self.chunk is not None else None

    @property
    def failed(self) -> bool:
        return self.chunk is None or self.chunk.kind == ChunkKind.ERROR

    def as_failure(self) -> StreamChunk:
        """The terminal error chunk, or a synthetic one if the stream ended without a result."""
        if self.chunk is not None and self.chunk.kind == ChunkKind.ERROR:
            return self.chunk
        return StreamChunk.failure("Model stream ended without a result")


class StageWorker:
    """Base class for the five stage workers."""

    stage: ClassVar[PipelineStage]

    def __init__(
        self,
        gateway: ModelGateway,
        *,
        validator: SchemaValidator | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self._gateway = gateway
        self._validator = validator or SchemaValidator()
        self._config = config or PipelineConfig()

    async def _forward(
        self, request: ModelRequest, terminal: Terminal
    ) -> AsyncIterator[StreamChunk]:
        """Yield the gateway's intermediate chunks; store its terminal chunk in *terminal*."""
        async for chunk in self._gateway.invoke(request):
            if chunk.is_terminal:
                terminal.chunk = chunk
            else:
                yield chunk


class ValidatedStageWorker(StageWorker):
    """Stage worker that validates structured output with bounded retries.

    ``Invoking -> Validating -> Done | Retrying -> Invoking | Failed``: an
    invalid answer, before or after post-processing, re-issues the same
    request until ``max_validation_retries`` is used up. A model error ends
    the stage at once without consuming a validation retry.
    """

    artifact_name: ClassVar[str]

    async def _run_validated(
        self,
        request: ModelRequest,
        validate: Callable[[Any], ValidationResult[T]],
        post_process: Callable[[T], Any],
        revalidate: Callable[[Any], ValidationResult[T]] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        revalidate = revalidate or validate
        max_retries = self._config.max_validation_retries
        errors: list[FieldError] = []
        usage: TokenMetadata | None = None

        for attempt in range(max_retries + 1):
            yield StreamChunk.thinking(
                f"Generating {self.artifact_name} (attempt {attempt + 1})..."
            )

            terminal = Terminal()
            async for chunk in self._forward(request, terminal):
                yield chunk
            if terminal.failed:
                yield terminal.as_failure()
                return

            usage = add_usage(usage, terminal.token_metadata)
            checked = validate(terminal.result)
            if checked.ok:
                final = revalidate(post_process(checked.value))
                if final.ok:
                    yield StreamChunk.result(final.value, usage)
                    return
                errors.extend(final.errors)
            else:
                errors.extend(checked.errors)

            logger.info(
                "stage_validation_failed",
                stage=str(self.stage),
                attempt=attempt + 1,
                errors=len(errors),
            )
            if attempt < max_retries:
                yield StreamChunk.thinking(
                    f"Validation failed, retrying ({attempt + 1}/{max_retries})..."
                )

        message = (
            f"Schema validation failed for {self.artifact_name} "
            f"after {max_retries + 1} attempts"
        )
        yield StreamChunk.failure(message, SchemaValidationError(message, errors))
