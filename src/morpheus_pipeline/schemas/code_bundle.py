from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from morpheus_pipeline.schemas._base import ArtifactModel, flex_id, new_id

UNKNOWN_FAILURE = "Unknown failure"
EXHAUSTED_ERROR = "Tests failed after maximum debug iterations"


class GeneratedFile(ArtifactModel):
    path: str
    content: str
    language: str = ""


class TestResult(ArtifactModel):
    __test__ = False  # not a pytest class

    name: str
    passed: bool
    error: str | None = None


class FailureReport(ArtifactModel):
    unresolved_issues: list[str]
    debug_iterations: int
    last_error: str

    @classmethod
    def from_tests(
        cls, test_results: list[TestResult], debug_iterations: int
    ) -> FailureReport:
        failing = [t for t in test_results if not t.passed]
        return cls(
            unresolved_issues=[
                f"{t.name}: {t.error or UNKNOWN_FAILURE}" for t in failing
            ],
            debug_iterations=debug_iterations,
            last_error=(failing[0].error if failing else None) or EXHAUSTED_ERROR,
        )


class CodeBundle(ArtifactModel):
    """Generated source files plus the outcome of their own tests."""

    id: str = Field(default_factory=new_id)
    architecture_doc_id: str
    files: list[GeneratedFile] = Field(default_factory=list)
    dependencies: dict[str, str] = Field(default_factory=dict)
    test_results: list[TestResult] = Field(default_factory=list)
    debug_iterations: int = 0
    failure_report: FailureReport | None = None
    validated: bool = False

    @classmethod
    def parse_lenient(cls, raw: Any, architecture_doc_id: str) -> CodeBundle:
        """Build a bundle from whatever the model returned.

        Entries that do not fit their record are dropped; a non-object
        answer yields an empty bundle. ``architecture_doc_id`` always wins
        over any id the model echoed back.
        """
        if not isinstance(raw, dict):
            return cls(architecture_doc_id=architecture_doc_id)
        raw_id = raw.get("id")
        deps = raw.get("dependencies")
        return cls(
            id=flex_id(raw_id) if isinstance(raw_id, str) and raw_id else new_id(),
            architecture_doc_id=architecture_doc_id,
            files=_records(GeneratedFile, raw.get("files")),
            dependencies=(
                {str(k): str(v) for k, v in deps.items()} if isinstance(deps, dict) else {}
            ),
            test_results=_records(TestResult, raw.get("testResults")),
        )

    @property
    def all_tests_passing(self) -> bool:
        return bool(self.test_results) and all(t.passed for t in self.test_results)

    @property
    def failing_tests(self) -> list[TestResult]:
        return [t for t in self.test_results if not t.passed]


def _records(model: type[BaseModel], items: Any) -> list[Any]:
    if not isinstance(items, list):
        return []
    out = []
    for item in items:
        try:
            out.append(model.model_validate(item))
        except ValidationError:
            continue
    return out
