from __future__ import annotations

from typing import AsyncIterator, Protocol, runtime_checkable

from morpheus_pipeline.core.types import ModelRequest, StreamChunk


@runtime_checkable
class ModelGateway(Protocol):
    """Structural type for the model-calling collaborator.

    ``invoke`` returns a finite, non-restartable stream of chunks: any number
    of ``thinking``, ``code`` or ``text`` chunks followed by exactly one
    terminal ``result`` or ``error`` chunk. Implementations report failures
    as ``error`` chunks instead of raising.
    """

    def invoke(self, request: ModelRequest) -> AsyncIterator[StreamChunk]: ...

    @property
    def rate_limit_wait_seconds(self) -> int: ...
