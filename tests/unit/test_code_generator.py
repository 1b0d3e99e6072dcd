"""Tests for stages/code_generator.py: the bounded auto-repair loop."""
from __future__ import annotations

from typing import Any

import pytest

from morpheus_pipeline.core.config import PipelineConfig
from morpheus_pipeline.core.constants import ChunkKind, ModelTier, ModelTool
from morpheus_pipeline.core.exceptions import APIError
from morpheus_pipeline.core.types import StreamChunk
from morpheus_pipeline.gateway import prompts
from morpheus_pipeline.gateway.mock import MockModelGateway
from morpheus_pipeline.schemas.architecture_doc import ArchitectureDoc
from morpheus_pipeline.schemas.code_bundle import EXHAUSTED_ERROR, CodeBundle, FailureReport, TestResult
from morpheus_pipeline.stages.code_generator import CodeGenerator


@pytest.fixture
def arch(architecture_raw: dict[str, Any]) -> ArchitectureDoc:
    return ArchitectureDoc.model_validate(architecture_raw)


async def _run(generator: CodeGenerator, arch: ArchitectureDoc) -> list[StreamChunk]:
    return [chunk async for chunk in generator.run(arch)]


def _of(chunks: list[StreamChunk], kind: ChunkKind) -> list[StreamChunk]:
    return [c for c in chunks if c.kind == kind]


async def test_passing_tests_validate_immediately(
    mock_gateway: MockModelGateway, arch: ArchitectureDoc, passing_code_raw: dict[str, Any]
) -> None:
    mock_gateway.register(prompts.GENERATE_CODE, passing_code_raw)

    chunks = await _run(CodeGenerator(mock_gateway), arch)

    bundle = chunks[-1].content
    assert chunks[-1].kind == ChunkKind.RESULT
    assert isinstance(bundle, CodeBundle)
    assert bundle.validated is True
    assert bundle.debug_iterations == 0
    assert bundle.failure_report is None
    assert bundle.architecture_doc_id == arch.id
    assert bundle.dependencies == {"express": "^4.19.0"}
    assert mock_gateway.call_count() == 1
    request = mock_gateway.calls[0]
    assert request.tier == ModelTier.FLASH
    assert request.tools == [ModelTool.CODE_EXECUTION]


async def test_repair_until_tests_pass(
    mock_gateway: MockModelGateway,
    arch: ArchitectureDoc,
    passing_code_raw: dict[str, Any],
    failing_code_raw: dict[str, Any],
) -> None:
    mock_gateway.register(prompts.GENERATE_CODE, [failing_code_raw, failing_code_raw, passing_code_raw])

    chunks = await _run(CodeGenerator(mock_gateway), arch)

    bundle = chunks[-1].content
    assert bundle.validated is True
    assert bundle.debug_iterations == 2
    assert mock_gateway.call_count() == 3
    assert [c.content["debugIteration"] for c in _of(chunks, ChunkKind.TEST_RESULT)] == [0, 1, 2]
    assert chunks[-1].token_metadata.total_token_count == 105


async def test_repair_prompt_lists_failing_tests(
    mock_gateway: MockModelGateway,
    arch: ArchitectureDoc,
    passing_code_raw: dict[str, Any],
    failing_code_raw: dict[str, Any],
) -> None:
    mock_gateway.register(prompts.GENERATE_CODE, [failing_code_raw, passing_code_raw])

    chunks = await _run(CodeGenerator(mock_gateway), arch)

    assert "answers a question: expected 'ok', got null" in mock_gateway.calls[1].prompt
    assert "failed these tests" not in mock_gateway.calls[0].prompt
    diagnostic = [c for c in _of(chunks, ChunkKind.CODE) if isinstance(c.content, dict) and "failingTests" in c.content]
    assert diagnostic[0].content == {
        "debugIteration": 1,
        "failingTests": [{"name": "answers a question", "error": "expected 'ok', got null"}],
    }


async def test_exhaustion_returns_best_effort_bundle(
    mock_gateway: MockModelGateway, arch: ArchitectureDoc, failing_code_raw: dict[str, Any]
) -> None:
    mock_gateway.register(prompts.GENERATE_CODE, failing_code_raw)

    chunks = await _run(CodeGenerator(mock_gateway), arch)

    final = chunks[-1]
    assert final.kind == ChunkKind.RESULT
    bundle = final.content
    assert bundle.validated is False
    assert bundle.debug_iterations == 5
    assert bundle.failure_report is not None
    assert bundle.failure_report.unresolved_issues == ["answers a question: expected 'ok', got null"]
    assert bundle.failure_report.debug_iterations == 5
    assert bundle.failure_report.last_error == "expected 'ok', got null"
    assert mock_gateway.call_count() == 6
    assert any(
        c.content == "Auto-debug exhausted after 5 iterations. "
        "Packaging best-effort bundle with failure report."
        for c in _of(chunks, ChunkKind.THINKING)
    )


async def test_no_tests_is_not_passing(mock_gateway: MockModelGateway, arch: ArchitectureDoc) -> None:
    mock_gateway.register(prompts.GENERATE_CODE, {"files": [], "testResults": []})
    config = PipelineConfig(max_repair_iterations=2)

    chunks = await _run(CodeGenerator(mock_gateway, config=config), arch)

    bundle = chunks[-1].content
    assert bundle.validated is False
    assert bundle.debug_iterations == 2
    assert bundle.failure_report.unresolved_issues == []
    assert bundle.failure_report.last_error == EXHAUSTED_ERROR


async def test_repair_error_is_skipped(
    mock_gateway: MockModelGateway,
    arch: ArchitectureDoc,
    passing_code_raw: dict[str, Any],
    failing_code_raw: dict[str, Any],
) -> None:
    mock_gateway.register(
        prompts.GENERATE_CODE,
        [failing_code_raw, APIError("Service unavailable", 503), passing_code_raw],
    )

    chunks = await _run(CodeGenerator(mock_gateway), arch)

    bundle = chunks[-1].content
    assert chunks[-1].kind == ChunkKind.RESULT
    assert bundle.validated is True
    assert bundle.debug_iterations == 2
    assert not _of(chunks, ChunkKind.ERROR)


async def test_initial_generation_error_fails_stage(
    mock_gateway: MockModelGateway, arch: ArchitectureDoc
) -> None:
    mock_gateway.register(prompts.GENERATE_CODE, APIError("Invalid argument", 400))

    chunks = await _run(CodeGenerator(mock_gateway), arch)

    assert chunks[-1].kind == ChunkKind.ERROR
    assert chunks[-1].content == "Invalid argument"
    assert mock_gateway.call_count() == 1


async def test_bundle_ignores_echoed_parent_id(
    mock_gateway: MockModelGateway, arch: ArchitectureDoc, passing_code_raw: dict[str, Any]
) -> None:
    raw = {**passing_code_raw, "id": "bundle-1", "architectureDocId": "someone-else"}
    mock_gateway.register(prompts.GENERATE_CODE, raw)

    bundle = (await _run(CodeGenerator(mock_gateway), arch))[-1].content
    assert bundle.architecture_doc_id == arch.id
    assert bundle.id != "bundle-1"


class TestParseLenient:
    def test_drops_invalid_entries(self) -> None:
        raw = {
            "files": [{"path": "a.ts", "content": "x"}, {"path": "missing content"}, "junk"],
            "dependencies": {"zod": 3},
            "testResults": [{"name": "t", "passed": True}, {"passed": False}],
        }
        bundle = CodeBundle.parse_lenient(raw, "arch-1")
        assert [f.path for f in bundle.files] == ["a.ts"]
        assert bundle.dependencies == {"zod": "3"}
        assert [t.name for t in bundle.test_results] == ["t"]

    def test_non_object_answer(self) -> None:
        bundle = CodeBundle.parse_lenient(["not", "a", "bundle"], "arch-1")
        assert bundle.files == []
        assert not bundle.all_tests_passing

    def test_failure_report_defaults(self) -> None:
        report = FailureReport.from_tests([TestResult(name="t", passed=False)], 5)
        assert report.unresolved_issues == ["t: Unknown failure"]
        assert report.last_error == EXHAUSTED_ERROR
