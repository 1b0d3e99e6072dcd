"""Pipeline artifact records exchanged between stages."""

from morpheus_pipeline.schemas.agent_spec import (
    AdvancedOptions,
    AgentPersonality,
    AgentSpec,
    DataSource,
    EdgeCase,
    InputField,
    Integration,
    OutputField,
)
from morpheus_pipeline.schemas.architecture_doc import (
    ArchitectureDoc,
    IntegrationSpec,
    MultiAgentStrategy,
    Tradeoff,
)
from morpheus_pipeline.schemas.code_bundle import (
    CodeBundle,
    FailureReport,
    GeneratedFile,
    TestResult,
)
from morpheus_pipeline.schemas.deployment_result import DeploymentResult
from morpheus_pipeline.schemas.generated_ui import GeneratedUI, UIComponent

__all__ = [
    "AdvancedOptions",
    "AgentPersonality",
    "AgentSpec",
    "ArchitectureDoc",
    "CodeBundle",
    "DataSource",
    "DeploymentResult",
    "EdgeCase",
    "FailureReport",
    "GeneratedFile",
    "GeneratedUI",
    "InputField",
    "Integration",
    "IntegrationSpec",
    "MultiAgentStrategy",
    "OutputField",
    "TestResult",
    "Tradeoff",
    "UIComponent",
]
