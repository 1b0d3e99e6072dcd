# RUN: python examples/01_mock_build.py
"""Mock build: run all five stages against canned model answers.

Demonstrates: MockModelGateway purpose routing, the local deploy fallback,
and reading the finished Build from the registry.
"""

import asyncio

from morpheus_pipeline import EventKind, MockModelGateway, PipelineOrchestrator
from morpheus_pipeline.gateway import prompts

SPEC = {
    "id": "11111111-1111-4111-8111-111111111111",
    "corePurpose": "Answer customer questions about their orders",
    "inputRequirements": [
        {"name": "question", "type": "text", "required": True, "description": "Customer question"}
    ],
    "outputRequirements": [
        {"name": "answer", "type": "string", "description": "Answer to the question"}
    ],
    "dataSources": [],
    "integrations": [],
    "edgeCases": [{"description": "Empty question"}],
    "personality": {"tone": "helpful", "formality": "formal", "verbosity": "concise"},
    "communicationStyle": "Short formal answers",
    "complexityScore": 3,
    "inferredFields": [],
}

ARCHITECTURE = {
    "id": "22222222-2222-4222-8222-222222222222",
    "agentSpecId": SPEC["id"],
    "selectedModel": "gemini-3-flash",
    "promptStrategy": {
        "systemPrompt": "You answer order questions.",
        "fewShotExamples": [],
        "outputFormat": "text",
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
    "conversationFlow": [{"id": "start", "type": "start", "next": []}],
    "errorHandling": {"retryPolicy": {}, "fallbackBehavior": "Apologise and escalate"},
}

CODE = {
    "files": [{"path": "src/index.ts", "content": "export const run = () => 'ok';"}],
    "dependencies": {},
    "testResults": [{"name": "answers a question", "passed": True}],
}


async def main() -> None:
    mock = MockModelGateway()
    mock.register(prompts.ANALYZE, SPEC)
    mock.register(prompts.ARCHITECT, ARCHITECTURE)
    mock.register(prompts.GENERATE_CODE, CODE)
    mock.register(prompts.GENERATE_UI, {"components": [], "accessibilityScore": 90, "responsive": True})

    orchestrator = PipelineOrchestrator(mock)
    build_id = None
    async for event in orchestrator.start_build(
        "A support agent that answers order questions from a chat input through our API."
    ):
        build_id = event.build_id
        if event.kind in (EventKind.PROGRESS, EventKind.COMPLETE, EventKind.ERROR):
            print(f"[{event.stage}] {event.kind}: {event.data}")

    build = orchestrator.get_build(build_id)
    print(f"Status: {build.status}")
    print(f"UI: {build.generated_ui.public_url}")
    print(f"Tokens used: {build.token_usage.total_token_count}")


if __name__ == "__main__":
    asyncio.run(main())
