from __future__ import annotations

from typing import AsyncIterator

from morpheus_pipeline.core.constants import ChunkKind, ModelTier, ModelTool, PipelineStage
from morpheus_pipeline.core.types import ModelRequest, StreamChunk
from morpheus_pipeline.gateway import prompts
from morpheus_pipeline.schemas.agent_spec import AgentSpec
from morpheus_pipeline.schemas.deployment_result import DeploymentResult
from morpheus_pipeline.schemas.generated_ui import (
    GeneratedUI,
    default_components,
    public_url_for,
)
from morpheus_pipeline.stages.base import StageWorker, Terminal


class UIGenerator(StageWorker):
    """Single-call stage producing the :class:`GeneratedUI` for a deployed agent."""

    stage = PipelineStage.CREATING_UI

    def build_request(self, spec: AgentSpec) -> ModelRequest:
        return ModelRequest(
            prompt=prompts.ui_prompt(spec.input_requirements, spec.output_requirements),
            purpose=prompts.GENERATE_UI,
            tier=ModelTier.FLASH,
            tools=[ModelTool.CODE_EXECUTION],
        )

    async def run(
        self, spec: AgentSpec, deployment: DeploymentResult
    ) -> AsyncIterator[StreamChunk]:
        yield StreamChunk.thinking("Generating UI...")

        terminal = Terminal()
        async for chunk in self._forward(self.build_request(spec), terminal):
            yield chunk
        if terminal.failed:
            yield terminal.as_failure()
            return

        ui = GeneratedUI.parse_lenient(
            terminal.result,
            deployment_result_id=deployment.id,
            agent_spec_id=spec.id,
        )
        update = {}
        if not ui.components:
            update["components"] = default_components(
                spec.input_requirements, spec.output_requirements
            )
        if not ui.public_url:
            update["public_url"] = public_url_for(deployment.endpoint)
        if update:
            ui = ui.model_copy(update=update)

        yield StreamChunk(kind=ChunkKind.CODE, content=ui.to_wire())
        yield StreamChunk.result(ui, terminal.token_metadata)
