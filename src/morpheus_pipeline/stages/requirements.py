from __future__ import annotations

from typing import AsyncIterator

from pydantic import BaseModel

from morpheus_pipeline.core.constants import ModelTier, PipelineStage
from morpheus_pipeline.core.types import ModelRequest, StreamChunk
from morpheus_pipeline.gateway import prompts
from morpheus_pipeline.schemas.agent_spec import (
    DEFAULT_MITIGATION,
    AdvancedOptions,
    AgentSpec,
    EdgeCase,
)
from morpheus_pipeline.stages.base import ValidatedStageWorker

MAX_CLARIFYING_QUESTIONS = 3
MIN_DESCRIPTION_LENGTH = 50

AMBIGUOUS_INDICATORS = (
    "maybe",
    "possibly",
    "or something",
    "not sure",
    "kind of",
    "sort of",
    "something like",
    "etc",
    "and more",
    "and stuff",
    "whatever",
    "idk",
)

DEFAULT_EDGE_CASE = EdgeCase(
    description="Unexpected or malformed input",
    mitigation="Validate all inputs and return descriptive error messages",
)


class ClarifyingQuestion(BaseModel):
    question: str
    example_answer: str


def is_ambiguous(description: str) -> bool:
    """Whether *description* hedges or is too short to pin down an agent."""
    lower = description.lower()
    return (
        any(indicator in lower for indicator in AMBIGUOUS_INDICATORS)
        or len(description) < MIN_DESCRIPTION_LENGTH
    )


def clarifying_questions(description: str) -> list[ClarifyingQuestion]:
    """Up to three questions about what the description leaves open."""
    lower = description.lower()
    questions: list[ClarifyingQuestion] = []

    if not any(w in lower for w in ("input", "receive", "accept")):
        questions.append(ClarifyingQuestion(
            question="What type of input will your agent receive?",
            example_answer="Text messages from users asking questions about our product catalog",
        ))
    if not any(w in lower for w in ("output", "return", "respond", "generate")):
        questions.append(ClarifyingQuestion(
            question="What kind of output should your agent produce?",
            example_answer="Structured JSON responses with product recommendations and explanations",
        ))
    if not any(w in lower for w in ("integrat", "connect", "api")):
        questions.append(ClarifyingQuestion(
            question="Does your agent need to connect to any external services or APIs?",
            example_answer=(
                "Yes, it should connect to our REST API for product data and Stripe for payments"
            ),
        ))
    if len(questions) < MAX_CLARIFYING_QUESTIONS and not any(
        w in lower for w in ("tone", "style", "formal", "casual")
    ):
        questions.append(ClarifyingQuestion(
            question="What communication style should your agent use?",
            example_answer=(
                "Professional but friendly, like a knowledgeable customer service representative"
            ),
        ))
    return questions[:MAX_CLARIFYING_QUESTIONS]


def inferred_fields(spec: AgentSpec, description: str) -> list[str]:
    """Fields the description gives no explicit language for, so their values were guessed."""
    lower = description.lower()
    inferred = []
    if not any(w in lower for w in ("tone", "personality", "style")):
        inferred.append("personality")
    if not any(w in lower for w in ("formal", "casual")):
        inferred.append("communicationStyle")
    if not spec.data_sources and not any(w in lower for w in ("data", "source", "database")):
        inferred.append("dataSources")
    return inferred


def ensure_edge_case_mitigations(spec: AgentSpec) -> AgentSpec:
    edge_cases = [
        ec if ec.mitigation else ec.model_copy(update={"mitigation": DEFAULT_MITIGATION})
        for ec in spec.edge_cases
    ]
    if not edge_cases:
        edge_cases.append(DEFAULT_EDGE_CASE)
    return spec.model_copy(update={"edge_cases": edge_cases})


def post_process(
    spec: AgentSpec, description: str, options: AdvancedOptions | None = None
) -> AgentSpec:
    """Fill in defaults the model left out. Idempotent."""
    spec = ensure_edge_case_mitigations(spec)
    merged = list(dict.fromkeys([*spec.inferred_fields, *inferred_fields(spec, description)]))
    update: dict[str, object] = {"inferred_fields": merged}
    if options is not None:
        update["advanced_options"] = options
    return spec.model_copy(update=update)


class RequirementsAnalyzer(ValidatedStageWorker):
    """Turns a natural-language description into a validated :class:`AgentSpec`."""

    stage = PipelineStage.ANALYZING
    artifact_name = "AgentSpec"

    def build_request(
        self, description: str, options: AdvancedOptions | None = None
    ) -> ModelRequest:
        return ModelRequest(
            prompt=prompts.analyze_prompt(description, options),
            purpose=prompts.ANALYZE,
            tier=ModelTier.PRO,
        )

    async def run(
        self, description: str, options: AdvancedOptions | None = None
    ) -> AsyncIterator[StreamChunk]:
        if is_ambiguous(description):
            questions = clarifying_questions(description)
            if questions:
                yield StreamChunk.thinking({
                    "clarifyingQuestions": [
                        {"question": q.question, "exampleAnswer": q.example_answer}
                        for q in questions
                    ],
                    "message": "Description may be ambiguous. Proceeding with basic version.",
                })

        async for chunk in self._run_validated(
            self.build_request(description, options),
            self._validator.validate_agent_spec,
            lambda spec: post_process(spec, description, options),
        ):
            yield chunk
