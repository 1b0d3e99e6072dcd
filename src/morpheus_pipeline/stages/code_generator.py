from __future__ import annotations

from typing import AsyncIterator

import structlog

from morpheus_pipeline.core.constants import ChunkKind, ModelTier, ModelTool, PipelineStage
from morpheus_pipeline.core.types import ModelRequest, StreamChunk, TokenMetadata
from morpheus_pipeline.gateway import prompts
from morpheus_pipeline.schemas.architecture_doc import ArchitectureDoc
from morpheus_pipeline.schemas.code_bundle import CodeBundle, FailureReport, TestResult
from morpheus_pipeline.stages.base import StageWorker, Terminal, add_usage

logger = structlog.get_logger(__name__)


class CodeGenerator(StageWorker):
    """Generates a :class:`CodeBundle` and repairs it until its own tests pass.

    ``Generating -> Testing -> Done | Repairing -> Generating |
    ExhaustedWithReport``. Exhaustion is not a stage failure: the best-effort
    bundle is returned with ``validated=False`` and a failure report.
    """

    stage = PipelineStage.GENERATING

    def build_request(
        self, arch: ArchitectureDoc, failing_tests: list[TestResult] | None = None
    ) -> ModelRequest:
        return ModelRequest(
            prompt=prompts.code_prompt(arch, failing_tests),
            purpose=prompts.GENERATE_CODE,
            tier=ModelTier.FLASH,
            tools=[ModelTool.CODE_EXECUTION],
        )

    @staticmethod
    def _test_chunk(bundle: CodeBundle, iteration: int) -> StreamChunk:
        return StreamChunk(
            kind=ChunkKind.TEST_RESULT,
            content={
                "debugIteration": iteration,
                "passed": bundle.all_tests_passing,
                "testResults": [t.to_wire() for t in bundle.test_results],
            },
        )

    async def run(self, arch: ArchitectureDoc) -> AsyncIterator[StreamChunk]:
        max_iterations = self._config.max_repair_iterations
        usage: TokenMetadata | None = None

        yield StreamChunk.thinking("Starting code generation...")
        terminal = Terminal()
        async for chunk in self._forward(self.build_request(arch), terminal):
            yield chunk
        if terminal.failed:
            yield terminal.as_failure()
            return
        usage = add_usage(usage, terminal.token_metadata)

        bundle = CodeBundle.parse_lenient(terminal.result, arch.id)
        yield self._test_chunk(bundle, 0)

        iteration = 0
        while iteration < max_iterations and not bundle.all_tests_passing:
            iteration += 1
            failing = bundle.failing_tests
            yield StreamChunk.thinking(
                f"Debug iteration {iteration}/{max_iterations}: analyzing test failures..."
            )
            yield StreamChunk(
                kind=ChunkKind.CODE,
                content={
                    "debugIteration": iteration,
                    "failingTests": [{"name": t.name, "error": t.error} for t in failing],
                },
            )

            terminal = Terminal()
            async for chunk in self._forward(self.build_request(arch, failing), terminal):
                yield chunk
            if terminal.failed:
                logger.warning(
                    "repair_iteration_failed",
                    iteration=iteration,
                    error=str(terminal.as_failure().content),
                )
                continue

            usage = add_usage(usage, terminal.token_metadata)
            bundle = CodeBundle.parse_lenient(terminal.result, arch.id)
            yield self._test_chunk(bundle, iteration)

        if bundle.all_tests_passing:
            bundle = bundle.model_copy(
                update={"debug_iterations": iteration, "validated": True}
            )
        else:
            yield StreamChunk.thinking(
                f"Auto-debug exhausted after {max_iterations} iterations. "
                "Packaging best-effort bundle with failure report."
            )
            bundle = bundle.model_copy(update={
                "debug_iterations": iteration,
                "validated": False,
                "failure_report": FailureReport.from_tests(bundle.test_results, iteration),
            })
        logger.info(
            "code_generated",
            validated=bundle.validated,
            debug_iterations=bundle.debug_iterations,
            files=len(bundle.files),
        )
        yield StreamChunk.result(bundle, usage)
