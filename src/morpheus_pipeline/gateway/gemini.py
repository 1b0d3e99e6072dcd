from __future__ import annotations

from typing import Any, AsyncIterator

import structlog

from morpheus_pipeline.core.config import ModelClientConfig
from morpheus_pipeline.core.constants import ChunkKind, ModelTool, ResponseMode
from morpheus_pipeline.core.exceptions import MorpheusError
from morpheus_pipeline.core.types import ModelRequest, StreamChunk
from morpheus_pipeline.gateway.backoff import BackoffClient

logger = structlog.get_logger(__name__)


class GeminiGateway:
    """Streaming adapter that turns :class:`BackoffClient` calls into chunks.

    Classified errors raised by the client become a terminal ``error`` chunk
    carrying the exception, so stage workers never see a raised model error.

    Usage::

        async with GeminiGateway(ModelClientConfig.from_env()) as gateway:
            async for chunk in gateway.invoke(ModelRequest(prompt="...")):
                ...
    """

    def __init__(
        self,
        config: ModelClientConfig | None = None,
        *,
        client: BackoffClient | None = None,
    ) -> None:
        self._client = client or BackoffClient(config)

    @property
    def client(self) -> BackoffClient:
        return self._client

    @property
    def rate_limit_wait_seconds(self) -> int:
        return self._client.rate_limit_wait_seconds

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> GeminiGateway:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def invoke(self, request: ModelRequest) -> AsyncIterator[StreamChunk]:
        model = self._client.config.model_for(request.tier)
        yield StreamChunk.thinking(f"Calling {model} for {request.purpose or 'request'}...")

        try:
            answer = await self._client.call_with_usage(request)
        except MorpheusError as exc:
            logger.warning(
                "model_call_failed",
                purpose=request.purpose,
                error=exc.message,
                retryable=exc.is_retryable,
            )
            yield StreamChunk.failure(exc.message, exc)
            return

        if request.response_mode == ResponseMode.TEXT:
            yield StreamChunk(kind=ChunkKind.TEXT, content=answer.value)
        elif ModelTool.CODE_EXECUTION in request.tools:
            yield StreamChunk(kind=ChunkKind.CODE, content=answer.value)

        yield StreamChunk.result(answer.value, answer.token_metadata)
