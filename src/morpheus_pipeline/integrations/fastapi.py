"""FastAPI integration for the build pipeline.

Usage::

    from morpheus_pipeline.integrations.fastapi import create_build_router

    app = FastAPI()
    app.include_router(create_build_router(orchestrator, prefix="/builds"))

Build and retry endpoints stream :class:`ProgressEvent` records as
server-sent events: the event kind as the SSE ``event`` name and the
camelCase JSON record as its ``data``.

Requires the ``fastapi`` extra::

    pip install morpheus-pipeline[fastapi]
"""

from __future__ import annotations

import json
from typing import AsyncIterator

try:
    from fastapi import APIRouter, FastAPI, HTTPException
    from fastapi.responses import JSONResponse
    from pydantic import BaseModel as _FaBaseModel
    from sse_starlette.sse import EventSourceResponse
except ImportError as _err:  # pragma: no cover
    raise ImportError(
        "FastAPI and sse-starlette are required for morpheus_pipeline.integrations.fastapi. "
        "Install it with: pip install morpheus-pipeline[fastapi]"
    ) from _err

from morpheus_pipeline.core.config import PipelineConfig
from morpheus_pipeline.core.constants import PipelineStage
from morpheus_pipeline.core.exceptions import BuildNotFoundError
from morpheus_pipeline.core.types import ProgressEvent
from morpheus_pipeline.pipeline.orchestrator import PipelineOrchestrator
from morpheus_pipeline.schemas.agent_spec import AdvancedOptions
from morpheus_pipeline.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class _BuildRequest(_FaBaseModel):
    description: str
    options: AdvancedOptions | None = None


class _CancelResponse(_FaBaseModel):
    buildId: str
    cancelled: bool


class _RateLimitResponse(_FaBaseModel):
    waitSeconds: int


# ---------------------------------------------------------------------------
# Server-sent events
# ---------------------------------------------------------------------------


def encode_event(event: ProgressEvent) -> dict[str, str]:
    return {"event": event.kind.value, "data": json.dumps(event.to_wire(), default=str)}


async def _sse(events: AsyncIterator[ProgressEvent]) -> AsyncIterator[dict[str, str]]:
    async for event in events:
        yield encode_event(event)


# ---------------------------------------------------------------------------
# Router / app factories
# ---------------------------------------------------------------------------


def create_build_router(
    orchestrator: PipelineOrchestrator,
    prefix: str = "/builds",
) -> APIRouter:
    """Return an :class:`APIRouter` exposing the orchestrator.

    Endpoints:
        - ``POST {prefix}``                       start a build (SSE)
        - ``POST {prefix}/{build_id}/retry/{stage}`` retry a stage (SSE)
        - ``POST {prefix}/{build_id}/cancel``     cancel a build
        - ``GET  {prefix}/{build_id}``            build summary
        - ``GET  /rate-limit``                    seconds until the model API may be called
    """
    router = APIRouter(tags=["builds"])

    @router.post(prefix)
    async def start_build(body: _BuildRequest) -> EventSourceResponse:
        logger.info("api_build_requested", description_length=len(body.description))
        events = orchestrator.start_build(body.description, body.options)
        return EventSourceResponse(_sse(events))

    @router.post(prefix + "/{build_id}/retry/{stage}")
    async def retry_stage(build_id: str, stage: PipelineStage) -> EventSourceResponse:
        return EventSourceResponse(_sse(orchestrator.retry_stage(build_id, stage)))

    @router.post(prefix + "/{build_id}/cancel", response_model=_CancelResponse)
    async def cancel_build(build_id: str) -> _CancelResponse:
        cancelled = orchestrator.cancel_build(build_id)
        if not cancelled:
            raise HTTPException(status_code=404, detail="Build not found")
        return _CancelResponse(buildId=build_id, cancelled=True)

    @router.get(prefix + "/{build_id}")
    async def get_build(build_id: str) -> JSONResponse:
        try:
            build = orchestrator.registry.require(build_id)
        except BuildNotFoundError as exc:
            raise HTTPException(status_code=404, detail="Build not found") from exc
        return JSONResponse(content=build.summary())

    @router.get("/rate-limit", response_model=_RateLimitResponse)
    async def rate_limit() -> _RateLimitResponse:
        return _RateLimitResponse(waitSeconds=orchestrator.rate_limit_wait_seconds)

    return router


def create_app(
    orchestrator: PipelineOrchestrator,
    config: PipelineConfig | None = None,
) -> FastAPI:
    """Return a :class:`FastAPI` app with logging configured and the build router mounted."""
    config = config or PipelineConfig()
    configure_logging(config.log_level)
    app = FastAPI(title="Morpheus pipeline")
    app.include_router(create_build_router(orchestrator))
    return app
