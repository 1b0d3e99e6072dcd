# RUN: uvicorn examples.02_fastapi_backend:app --reload
"""FastAPI backend: serve the build pipeline over server-sent events.

Needs a model API key in MORPHEUS_API_KEY (or GEMINI_API_KEY).

Then test with:
    curl -N -X POST http://localhost:8000/builds \
         -H "Content-Type: application/json" \
         -d '{"description": "A support agent that answers order questions"}'
"""

from morpheus_pipeline import (
    GeminiGateway,
    ModelClientConfig,
    PipelineConfig,
    PipelineOrchestrator,
)

try:
    from morpheus_pipeline.integrations.fastapi import create_app

    _FASTAPI_AVAILABLE = True
except ImportError:
    _FASTAPI_AVAILABLE = False


if _FASTAPI_AVAILABLE:
    orchestrator = PipelineOrchestrator(GeminiGateway(ModelClientConfig.from_env()))
    app = create_app(orchestrator, PipelineConfig.from_env())
else:
    print("FastAPI is not installed. Run: pip install morpheus-pipeline[fastapi]")
