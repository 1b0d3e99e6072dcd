"""Pipeline orchestrator: sequences the stage workers for each build."""

from __future__ import annotations

from contextlib import aclosing
from typing import Any, AsyncIterator

import structlog

from morpheus_pipeline.core.config import PipelineConfig
from morpheus_pipeline.core.constants import (
    STAGE_ORDER,
    ChunkKind,
    EventKind,
    PipelineStage,
)
from morpheus_pipeline.core.exceptions import (
    MorpheusError,
    PrerequisiteMissingError,
    SchemaValidationError,
    StageError,
)
from morpheus_pipeline.core.types import ProgressEvent, StreamChunk, TokenMetadata
from morpheus_pipeline.deploy.base import DeployService
from morpheus_pipeline.deploy.local import LocalDeployService
from morpheus_pipeline.gateway.base import ModelGateway
from morpheus_pipeline.pipeline.build import Build, BuildError
from morpheus_pipeline.pipeline.registry import BuildRegistry
from morpheus_pipeline.schemas.agent_spec import AdvancedOptions
from morpheus_pipeline.stages.architect import Architect
from morpheus_pipeline.stages.code_generator import CodeGenerator
from morpheus_pipeline.stages.deployment import DeploymentEngine
from morpheus_pipeline.stages.requirements import RequirementsAnalyzer
from morpheus_pipeline.stages.ui_generator import UIGenerator
from morpheus_pipeline.storage.base import ArtifactStore
from morpheus_pipeline.validation.validator import SchemaValidator

logger = structlog.get_logger(__name__)

BUILD_NOT_FOUND = "Build not found"
UNKNOWN_STAGE = "Unknown stage"

_FORWARDED_KINDS: dict[ChunkKind, EventKind] = {
    ChunkKind.THINKING: EventKind.THINKING,
    ChunkKind.CODE: EventKind.CODE,
    ChunkKind.TEXT: EventKind.CODE,
    ChunkKind.TEST_RESULT: EventKind.TEST_RESULT,
}


class PipelineOrchestrator:
    """Runs builds through analyzing, designing, generating, deploying and creating-ui.

    Every public entry point returns an async generator of
    :class:`ProgressEvent`. Abandoning a generator early does not cancel the
    build; :meth:`cancel_build` does, at the next stage boundary or
    forwarded chunk.

    Example::

        orchestrator = PipelineOrchestrator(GeminiGateway(ModelClientConfig.from_env()))
        async for event in orchestrator.start_build("build a support bot"):
            print(event.stage, event.kind, event.data)
    """

    def __init__(
        self,
        gateway: ModelGateway,
        deployer: DeployService | None = None,
        *,
        validator: SchemaValidator | None = None,
        config: PipelineConfig | None = None,
        registry: BuildRegistry | None = None,
        store: ArtifactStore | None = None,
    ) -> None:
        validator = validator or SchemaValidator()
        config = config or PipelineConfig()
        self._gateway = gateway
        self._registry = registry if registry is not None else BuildRegistry()
        self._store = store
        self._requirements = RequirementsAnalyzer(gateway, validator=validator, config=config)
        self._architect = Architect(gateway, validator=validator, config=config)
        self._code_generator = CodeGenerator(gateway, validator=validator, config=config)
        self._deployment = DeploymentEngine(
            deployer or LocalDeployService(), validator=validator, config=config
        )
        self._ui_generator = UIGenerator(gateway, validator=validator, config=config)

    @property
    def registry(self) -> BuildRegistry:
        return self._registry

    @property
    def rate_limit_wait_seconds(self) -> int:
        return self._gateway.rate_limit_wait_seconds

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def get_build(self, build_id: str) -> Build | None:
        return self._registry.get(build_id)

    def cancel_build(self, build_id: str) -> bool:
        """Flag a build as cancelled. Returns ``False`` for an unknown id."""
        build = self._registry.get(build_id)
        if build is None:
            return False
        build.cancelled = True
        logger.info("build_cancel_requested", build_id=build_id)
        return True

    async def start_build(
        self, description: str, options: AdvancedOptions | None = None
    ) -> AsyncIterator[ProgressEvent]:
        """Create a build and run every stage in order."""
        build = Build(description=description, options=options)
        self._registry.add(build)
        logger.info("build_started", build_id=build.id)
        async for event in self._run_from(build, 0, retrying=False):
            yield event

    async def retry_stage(
        self, build_id: str, stage: PipelineStage | str
    ) -> AsyncIterator[ProgressEvent]:
        """Re-run *stage* of an existing build from its stored artifacts, then continue.

        An unknown *build_id* or *stage* yields exactly one error event and
        nothing else.
        """
        try:
            stage = PipelineStage(stage)
        except ValueError:
            logger.warning("retry_unknown_stage", build_id=build_id, stage=str(stage))
            yield ProgressEvent(
                build_id=build_id,
                stage=STAGE_ORDER[0],
                kind=EventKind.ERROR,
                data={"buildId": build_id, "message": f"{UNKNOWN_STAGE}: {stage}"},
            )
            return

        build = self._registry.get(build_id)
        if build is None:
            logger.warning("retry_unknown_build", build_id=build_id, stage=str(stage))
            yield ProgressEvent(
                build_id=build_id,
                stage=stage,
                kind=EventKind.ERROR,
                data={"buildId": build_id, "message": BUILD_NOT_FOUND},
            )
            return

        build.cancelled = False
        build.error = None
        start = STAGE_ORDER.index(stage)
        for later in STAGE_ORDER[start:]:
            build.store_artifact(later, None)
        logger.info("build_retry", build_id=build_id, stage=str(stage))
        async for event in self._run_from(build, start, retrying=True):
            yield event

    # ------------------------------------------------------------------ #
    # Stage sequencing
    # ------------------------------------------------------------------ #

    def _worker_for(self, build: Build, stage: PipelineStage) -> AsyncIterator[StreamChunk]:
        if stage == PipelineStage.ANALYZING:
            return self._requirements.run(build.description, build.options)
        if stage == PipelineStage.DESIGNING:
            if build.agent_spec is None:
                raise PrerequisiteMissingError("Cannot design: no AgentSpec available")
            return self._architect.run(build.agent_spec)
        if stage == PipelineStage.GENERATING:
            if build.architecture_doc is None:
                raise PrerequisiteMissingError(
                    "Cannot generate code: no ArchitectureDoc available"
                )
            return self._code_generator.run(build.architecture_doc)
        if stage == PipelineStage.DEPLOYING:
            if build.code_bundle is None:
                raise PrerequisiteMissingError("Cannot deploy: no CodeBundle available")
            return self._deployment.run(build.code_bundle)
        if build.agent_spec is None:
            raise PrerequisiteMissingError("Cannot create UI: no AgentSpec available")
        if build.deployment_result is None:
            raise PrerequisiteMissingError("Cannot create UI: no DeploymentResult available")
        return self._ui_generator.run(build.agent_spec, build.deployment_result)

    @staticmethod
    def _event(
        build: Build,
        stage: PipelineStage,
        kind: EventKind,
        data: Any,
        token_metadata: TokenMetadata | None = None,
    ) -> ProgressEvent:
        return ProgressEvent(
            build_id=build.id,
            stage=stage,
            kind=kind,
            data=data,
            token_metadata=token_metadata,
        )

    def _fail(self, build: Build, stage: PipelineStage, exc: Exception) -> ProgressEvent:
        message = exc.message if isinstance(exc, MorpheusError) else str(exc)
        build.error = BuildError(stage=stage, message=message)
        data: dict[str, Any] = {"buildId": build.id, "message": message}
        cause = exc.__cause__ if isinstance(exc, StageError) else exc
        if isinstance(cause, SchemaValidationError):
            data["errors"] = [e.to_dict() for e in cause.errors]
        logger.warning("stage_failed", build_id=build.id, stage=str(stage), error=message)
        return self._event(build, stage, EventKind.ERROR, data)

    async def _run_from(
        self, build: Build, start: int, *, retrying: bool
    ) -> AsyncIterator[ProgressEvent]:
        for index, stage in enumerate(STAGE_ORDER[start:]):
            if build.cancelled:
                logger.info("build_cancelled", build_id=build.id, before_stage=str(stage))
                return
            build.current_stage = stage
            status = "retrying" if retrying and index == 0 else "started"
            logger.info("stage_start", build_id=build.id, stage=str(stage), status=status)
            yield self._event(
                build, stage, EventKind.PROGRESS, {"buildId": build.id, "status": status}
            )

            result: StreamChunk | None = None
            try:
                async with aclosing(self._worker_for(build, stage)) as chunks:
                    async for chunk in chunks:
                        if build.cancelled:
                            logger.info("build_cancelled", build_id=build.id, stage=str(stage))
                            return
                        if chunk.kind == ChunkKind.RESULT:
                            result = chunk
                        elif chunk.kind == ChunkKind.ERROR:
                            raise StageError(stage, str(chunk.content)) from chunk.error
                        else:
                            kind = _FORWARDED_KINDS[chunk.kind]
                            yield self._event(build, stage, kind, chunk.content)
                if result is None:
                    raise StageError(stage, "Stage ended without a result")
            except MorpheusError as exc:
                if not build.cancelled:
                    yield self._fail(build, stage, exc)
                return
            except Exception as exc:
                logger.exception("stage_crashed", build_id=build.id, stage=str(stage))
                if not build.cancelled:
                    yield self._fail(build, stage, exc)
                return

            if build.cancelled:
                logger.info("build_cancelled", build_id=build.id, stage=str(stage))
                return

            build.store_artifact(stage, result.content)
            if result.token_metadata is not None:
                build.token_usage = build.token_usage + result.token_metadata
            logger.info("stage_complete", build_id=build.id, stage=str(stage))
            yield self._event(
                build,
                stage,
                EventKind.COMPLETE,
                {"buildId": build.id},
                token_metadata=result.token_metadata,
            )

        if build.is_complete:
            logger.info("build_completed", build_id=build.id)
            await self._persist(build)

    async def _persist(self, build: Build) -> None:
        if self._store is None:
            return
        for stage in STAGE_ORDER:
            artifact = build.artifact_for(stage)
            await self._store.set(
                ArtifactStore.build_key(build.id, str(stage)), artifact.to_wire()
            )
        await self._store.set(ArtifactStore.build_key(build.id, "summary"), build.summary())
