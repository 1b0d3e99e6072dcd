"""Prompt builders for the pipeline stages.

Prompt wording is not part of any contract; only the JSON shapes asked for
matter, since the stages validate against them.
"""

from __future__ import annotations

import json

from morpheus_pipeline.schemas.agent_spec import (
    AdvancedOptions,
    AgentSpec,
    InputField,
    OutputField,
)
from morpheus_pipeline.schemas.architecture_doc import ArchitectureDoc
from morpheus_pipeline.schemas.code_bundle import TestResult

ANALYZE = "analyze_requirements"
ARCHITECT = "design_architecture"
GENERATE_CODE = "generate_code"
GENERATE_UI = "generate_ui"


def analyze_prompt(description: str, options: AdvancedOptions | None = None) -> str:
    prompt = f"""You are a requirements analyzer for an AI agent platform. Analyze the following natural language description and produce a structured AgentSpec JSON object.

Description: {description}

The output must be a valid JSON object with these fields:
- id: a UUID
- corePurpose: string summarizing the agent's purpose
- inputRequirements: array of {{name, type, required, description, validation?}}
- outputRequirements: array of {{name, type, description}}
- dataSources: array of {{name, type, config}}
- integrations: array of {{name, type, authType, config}}
- edgeCases: array of {{description, mitigation}} (at least one mitigation per edge case)
- personality: {{tone, formality: "casual"|"neutral"|"formal", verbosity: "concise"|"balanced"|"detailed"}}
- communicationStyle: string
- complexityScore: integer 1-10
- inferredFields: array of field names that used default values"""

    if options is not None:
        prompt += f"\n\nAdvanced Options:\n{json.dumps(options.to_wire(), indent=2)}"
        prompt += "\nInclude these constraints in the advancedOptions field of the output."
    return prompt


def architecture_prompt(spec: AgentSpec) -> str:
    if spec.complexity_score > 7:
        multi_agent = (
            "- multiAgentStrategy: {agents: [{role, model}], coordinationPattern}"
            " (REQUIRED for complexity > 7)"
        )
    else:
        multi_agent = "- multiAgentStrategy: optional"
    if spec.integrations:
        integrations = (
            "- integrationSpecs: [{name, endpoint, authFlow, rateLimit?}]"
            " (REQUIRED, one per integration)"
        )
    else:
        integrations = "- integrationSpecs: optional"

    return f"""You are an agent architect. Given the following AgentSpec, design a comprehensive architecture document.

AgentSpec: {json.dumps(spec.to_wire(), indent=2)}

The output must be a valid JSON object with these fields:
- id: a UUID
- agentSpecId: "{spec.id}"
- selectedModel: "gemini-3-flash" or "gemini-3-pro"
- promptStrategy: {{systemPrompt, fewShotExamples: [{{input, output}}], outputFormat}}
- dataFlow: [{{step, name, input, output, description}}]
- stateManagement: {{type: "stateless"|"session"|"persistent", storage}}
- tools: [{{name, description, parameters}}]
- conversationFlow: [{{id, type: "start"|"process"|"decision"|"end", next: []}}]
- errorHandling: {{retryPolicy: {{maxRetries, backoffMs}}, fallbackBehavior}}
{multi_agent}
{integrations}
- tradeoffs: optional [{{decision, pros: [], cons: []}}]"""


def code_prompt(arch: ArchitectureDoc, failing_tests: list[TestResult] | None = None) -> str:
    prompt = f"""You are a code generator. Given the following ArchitectureDoc, generate all code files for the agent.

ArchitectureDoc: {json.dumps(arch.to_wire(), indent=2)}

Generate: agent core logic, API endpoints, database schema, integration code, test suites, configuration files, and Markdown documentation.
Run the test suites with code execution.
Return JSON: {{files: [{{path, content, language}}], dependencies: {{name: version}}, testResults: [{{name, passed, error?}}]}}"""

    if failing_tests:
        listing = "\n".join(f"- {t.name}: {t.error or 'no error text'}" for t in failing_tests)
        prompt += f"\n\nThe previous attempt failed these tests. Fix the code so they pass:\n{listing}"
    return prompt


def ui_prompt(inputs: list[InputField], outputs: list[OutputField]) -> str:
    input_schema = json.dumps([f.to_wire() for f in inputs], indent=2)
    output_schema = json.dumps([f.to_wire() for f in outputs], indent=2)
    return f"""You are a UI generator. Given the following input/output schema, generate a React web interface.

Input Schema: {input_schema}
Output Schema: {output_schema}

Generate a production-quality React component with form handling, validation, streaming support, and responsive design.
Return JSON: {{publicUrl?, components: [{{name, type, props}}], accessibilityScore, responsive}}"""
