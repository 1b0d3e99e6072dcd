from __future__ import annotations

import re
from typing import Any, AsyncIterator

from morpheus_pipeline.core.constants import ModelTier, PipelineStage
from morpheus_pipeline.core.types import ModelRequest, StreamChunk
from morpheus_pipeline.gateway import prompts
from morpheus_pipeline.schemas.agent_spec import AgentSpec
from morpheus_pipeline.schemas.architecture_doc import (
    AgentRole,
    ArchitectureDoc,
    IntegrationSpec,
    MultiAgentStrategy,
    Tradeoff,
)
from morpheus_pipeline.stages.base import ValidatedStageWorker
from morpheus_pipeline.validation.validator import FieldError, ValidationResult

HIGH_COMPLEXITY_THRESHOLD = 7
HIGH_COST_COMPLEXITY_THRESHOLD = 8
MAX_FEASIBLE_LATENCY_MS = 30000
MAX_FEASIBLE_INTEGRATIONS = 10
DEFAULT_RATE_LIMIT = 100

TRADEOFFS: dict[str, Tradeoff] = {
    "cost": Tradeoff(
        decision="Use Gemini Flash instead of Pro to reduce cost",
        pros=["Lower API cost per request", "Faster response times"],
        cons=["Reduced reasoning depth", "May miss complex edge cases"],
    ),
    "latency": Tradeoff(
        decision="Simplify multi-agent coordination to reduce latency",
        pros=["Faster end-to-end response time", "Simpler error handling"],
        cons=[
            "Less sophisticated task decomposition",
            "May reduce output quality for complex queries",
        ],
    ),
    "capability": Tradeoff(
        decision="Reduce number of integrations or use an integration hub",
        pros=["Simpler architecture", "Fewer points of failure", "Easier maintenance"],
        cons=["Reduced functionality", "May require manual steps for some integrations"],
    ),
    "cost_budget": Tradeoff(
        decision="Optimize token usage to stay within cost budget",
        pros=["Stays within user's cost constraint", "More predictable billing"],
        cons=["Shorter context windows", "May need to truncate inputs or outputs"],
    ),
}


def needs_multi_agent(spec: AgentSpec) -> bool:
    return spec.complexity_score > HIGH_COMPLEXITY_THRESHOLD


def default_multi_agent_strategy(spec: AgentSpec) -> MultiAgentStrategy:
    return MultiAgentStrategy(
        agents=[
            AgentRole(role="coordinator", model="gemini-3-pro"),
            AgentRole(role="specialist", model="gemini-3-flash"),
        ],
        coordination_pattern=f"Sequential coordination for {spec.core_purpose}",
    )


def default_integration_spec(name: str, auth_type: str) -> IntegrationSpec:
    slug = re.sub(r"\s+", "-", name.lower())
    return IntegrationSpec(
        name=name,
        endpoint=f"https://api.{slug}.com/v1",
        auth_flow=auth_type or "api_key",
        rate_limit=DEFAULT_RATE_LIMIT,
    )


def feasibility_violations(spec: AgentSpec, doc: ArchitectureDoc) -> list[str]:
    """Names of the feasibility constraints *doc* violates, in check order."""
    violations = []
    options = spec.advanced_options

    if (
        spec.complexity_score >= HIGH_COST_COMPLEXITY_THRESHOLD
        and doc.selected_model == "gemini-3-pro"
    ):
        violations.append("cost")

    if (
        options is not None
        and options.max_response_time
        and options.max_response_time < MAX_FEASIBLE_LATENCY_MS
        and needs_multi_agent(spec)
        and doc.multi_agent_strategy is not None
    ):
        violations.append("latency")

    if len(spec.integrations) > MAX_FEASIBLE_INTEGRATIONS:
        violations.append("capability")

    if options is not None and options.cost_constraint and needs_multi_agent(spec):
        violations.append("cost_budget")

    return violations


def ensure_conditional_fields(spec: AgentSpec, doc: ArchitectureDoc) -> ArchitectureDoc:
    """Synthesize required sub-structures and append feasibility tradeoffs. Idempotent."""
    update: dict[str, Any] = {"agent_spec_id": spec.id}

    strategy = doc.multi_agent_strategy
    if needs_multi_agent(spec) and (strategy is None or not strategy.agents):
        update["multi_agent_strategy"] = default_multi_agent_strategy(spec)

    if spec.integrations:
        specs = list(doc.integration_specs or [])
        covered = {s.name.strip().lower() for s in specs}
        for integration in spec.integrations:
            if integration.name.strip().lower() not in covered:
                specs.append(default_integration_spec(integration.name, integration.auth_type))
                covered.add(integration.name.strip().lower())
        update["integration_specs"] = specs

    doc = doc.model_copy(update=update)

    violations = feasibility_violations(spec, doc)
    if violations:
        tradeoffs = list(doc.tradeoffs or [])
        present = {t.decision for t in tradeoffs}
        for name in violations:
            tradeoff = TRADEOFFS[name]
            if tradeoff.decision not in present:
                tradeoffs.append(tradeoff)
                present.add(tradeoff.decision)
        doc = doc.model_copy(update={"tradeoffs": tradeoffs})
    return doc


def conditional_field_errors(spec: AgentSpec, doc: ArchitectureDoc) -> list[FieldError]:
    errors = []
    if needs_multi_agent(spec):
        agents = doc.multi_agent_strategy.agents if doc.multi_agent_strategy else []
        if not agents:
            errors.append(FieldError(
                path="multiAgentStrategy.agents",
                message="multiAgentStrategy with at least one agent is required "
                f"when complexityScore > {HIGH_COMPLEXITY_THRESHOLD}",
                expected=">=1 agent",
                received=str(len(agents)),
            ))
    if spec.integrations:
        count = len(doc.integration_specs or [])
        if count < len(spec.integrations):
            errors.append(FieldError(
                path="integrationSpecs",
                message="integrationSpecs must have at least one entry per integration",
                expected=f">={len(spec.integrations)} entries",
                received=str(count),
            ))
    if doc.agent_spec_id != spec.id:
        errors.append(FieldError(
            path="agentSpecId",
            message="agentSpecId must reference the source AgentSpec",
            expected=spec.id,
            received=doc.agent_spec_id,
        ))
    return errors


class Architect(ValidatedStageWorker):
    """Designs a validated :class:`ArchitectureDoc` for an :class:`AgentSpec`."""

    stage = PipelineStage.DESIGNING
    artifact_name = "ArchitectureDoc"

    def build_request(self, spec: AgentSpec) -> ModelRequest:
        return ModelRequest(
            prompt=prompts.architecture_prompt(spec),
            purpose=prompts.ARCHITECT,
            tier=ModelTier.PRO,
        )

    def _validate_final(self, spec: AgentSpec, doc: Any) -> ValidationResult[ArchitectureDoc]:
        checked = self._validator.validate_architecture_doc(doc)
        if not checked.ok:
            return checked
        errors = conditional_field_errors(spec, checked.value)
        if errors:
            return ValidationResult(errors=errors)
        return checked

    async def run(self, spec: AgentSpec) -> AsyncIterator[StreamChunk]:
        async for chunk in self._run_validated(
            self.build_request(spec),
            self._validator.validate_architecture_doc,
            lambda doc: ensure_conditional_fields(spec, doc),
            lambda doc: self._validate_final(spec, doc),
        ):
            yield chunk
