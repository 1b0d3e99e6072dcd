"""Shared test fixtures."""
from __future__ import annotations

import uuid
from typing import Any

import pytest

from morpheus_pipeline.core.config import PipelineConfig
from morpheus_pipeline.core.constants import DeployProvider
from morpheus_pipeline.core.exceptions import DeploymentError
from morpheus_pipeline.gateway import prompts
from morpheus_pipeline.gateway.mock import MockModelGateway
from morpheus_pipeline.schemas.code_bundle import CodeBundle

SPEC_ID = "11111111-1111-4111-8111-111111111111"
ARCH_ID = "22222222-2222-4222-8222-222222222222"

CLEAR_DESCRIPTION = (
    "A support agent that receives customer questions about orders through a chat "
    "input, connects to our order API, and responds with a short formal answer."
)


class FakeDeployer:
    """Deployer double: providers in *fail* raise, others report a running service."""

    def __init__(
        self,
        *,
        fail: tuple[DeployProvider, ...] = (),
        healthy: bool = True,
        record: dict[str, Any] | None = None,
    ) -> None:
        self.fail = set(fail)
        self.healthy = healthy
        self.record = record
        self.deployed: list[DeployProvider] = []
        self.health_checked: list[str] = []
        self.torn_down: list[str] = []

    async def deploy(self, bundle: CodeBundle, provider: DeployProvider) -> dict[str, Any]:
        self.deployed.append(provider)
        if provider in self.fail:
            raise DeploymentError(f"{provider} unavailable")
        if self.record is not None:
            return dict(self.record)
        return {
            "id": str(uuid.uuid4()),
            "codeBundleId": bundle.id,
            "provider": str(provider),
            "status": "running",
            "endpoint": f"https://{provider}.example.com/agent/",
            "healthCheckPassed": False,
            "envVars": ["GEMINI_API_KEY"],
            "deploymentTime": 1200,
            "fallbackUsed": False,
        }

    async def health_check(self, endpoint: str) -> bool:
        self.health_checked.append(endpoint)
        return self.healthy

    async def teardown(self, deployment_id: str) -> None:
        self.torn_down.append(deployment_id)


@pytest.fixture
def clear_description() -> str:
    return CLEAR_DESCRIPTION


@pytest.fixture
def agent_spec_raw() -> dict[str, Any]:
    return {
        "id": SPEC_ID,
        "corePurpose": "Answer customer questions about their orders",
        "inputRequirements": [
            {"name": "question", "type": "text", "required": True, "description": "Customer question"}
        ],
        "outputRequirements": [
            {"name": "answer", "type": "string", "description": "Answer to the question"}
        ],
        "dataSources": [],
        "integrations": [],
        "edgeCases": [
            {"description": "Empty question", "mitigation": "Ask the customer to rephrase"}
        ],
        "personality": {"tone": "helpful", "formality": "formal", "verbosity": "concise"},
        "communicationStyle": "Short formal answers",
        "complexityScore": 4,
        "inferredFields": [],
    }


@pytest.fixture
def architecture_raw() -> dict[str, Any]:
    return {
        "id": ARCH_ID,
        "agentSpecId": SPEC_ID,
        "selectedModel": "gemini-3-flash",
        "promptStrategy": {
            "systemPrompt": "You answer order questions.",
            "fewShotExamples": [{"input": "Where is my order?", "output": "It shipped today."}],
            "outputFormat": "json",
        },
        "dataFlow": [
            {
                "step": 1,
                "name": "answer",
                "input": "question",
                "output": "answer",
                "description": "Look up the order and answer",
            }
        ],
        "stateManagement": {"type": "stateless", "storage": "none"},
        "tools": [],
        "conversationFlow": [
            {"id": "start", "type": "start", "next": ["end"]},
            {"id": "end", "type": "end", "next": []},
        ],
        "errorHandling": {
            "retryPolicy": {"maxRetries": 3, "backoffMs": 1000},
            "fallbackBehavior": "Apologise and escalate",
        },
    }


@pytest.fixture
def passing_code_raw() -> dict[str, Any]:
    return {
        "files": [
            {"path": "src/index.ts", "content": "export const run = () => 'ok';", "language": "typescript"}
        ],
        "dependencies": {"express": "^4.19.0"},
        "testResults": [{"name": "answers a question", "passed": True}],
    }


@pytest.fixture
def failing_code_raw() -> dict[str, Any]:
    return {
        "files": [{"path": "src/index.ts", "content": "export const run = () => null;"}],
        "dependencies": {},
        "testResults": [
            {"name": "answers a question", "passed": False, "error": "expected 'ok', got null"},
            {"name": "handles empty input", "passed": True},
        ],
    }


@pytest.fixture
def ui_raw() -> dict[str, Any]:
    return {"components": [], "accessibilityScore": 92, "responsive": True}


@pytest.fixture
def mock_gateway() -> MockModelGateway:
    return MockModelGateway()


@pytest.fixture
def pipeline_gateway(
    agent_spec_raw: dict[str, Any],
    architecture_raw: dict[str, Any],
    passing_code_raw: dict[str, Any],
    ui_raw: dict[str, Any],
) -> MockModelGateway:
    """Mock gateway answering every stage with a valid artifact."""
    gw = MockModelGateway()
    gw.register(prompts.ANALYZE, agent_spec_raw)
    gw.register(prompts.ARCHITECT, architecture_raw)
    gw.register(prompts.GENERATE_CODE, passing_code_raw)
    gw.register(prompts.GENERATE_UI, ui_raw)
    return gw


@pytest.fixture
def fake_deployer() -> FakeDeployer:
    return FakeDeployer()


@pytest.fixture
def make_deployer() -> type[FakeDeployer]:
    return FakeDeployer


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig()


class RecordingSleep:
    """Async sleep double that records the requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()
