from __future__ import annotations

from typing import Any, AsyncIterator

import structlog

from morpheus_pipeline.core.config import PipelineConfig
from morpheus_pipeline.core.constants import (
    DeploymentStatus,
    DeployProvider,
    PipelineStage,
)
from morpheus_pipeline.core.types import StreamChunk
from morpheus_pipeline.deploy.base import DeployService
from morpheus_pipeline.deploy.local import LOCAL_ENDPOINT
from morpheus_pipeline.schemas._base import new_id
from morpheus_pipeline.schemas.code_bundle import CodeBundle
from morpheus_pipeline.schemas.deployment_result import DeploymentResult
from morpheus_pipeline.validation.validator import SchemaValidator

logger = structlog.get_logger(__name__)

LOCAL_INSTRUCTIONS = "\n".join([
    "All cloud deployments failed. To run locally:",
    "1. Extract the code bundle to a directory",
    "2. Run `npm install` to install dependencies",
    "3. Set environment variables (GEMINI_API_KEY)",
    "4. Run `npm start` to start the agent",
    f"5. The agent will be available at {LOCAL_ENDPOINT}",
])


def local_deployment_record(bundle: CodeBundle) -> dict[str, Any]:
    """Wire-shaped record of the local fallback deployment."""
    return {
        "id": new_id(),
        "codeBundleId": bundle.id,
        "provider": DeployProvider.LOCAL.value,
        "status": DeploymentStatus.STOPPED.value,
        "endpoint": LOCAL_ENDPOINT,
        "healthCheckPassed": False,
        "envVars": ["GEMINI_API_KEY"],
        "deploymentTime": 0,
        "fallbackUsed": True,
        "localInstructions": LOCAL_INSTRUCTIONS,
    }


class DeploymentEngine:
    """Deploys a code bundle along an ordered provider fallback chain.

    Each provider is deployed to and health-checked; an exception or a result
    that fails validation moves on to the next provider. When every provider
    is exhausted a local deployment result is returned, unvalidated if need be.
    """

    stage = PipelineStage.DEPLOYING

    def __init__(
        self,
        deployer: DeployService,
        *,
        validator: SchemaValidator | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self._deployer = deployer
        self._validator = validator or SchemaValidator()
        self._config = config or PipelineConfig()

    async def _deploy_to(self, bundle: CodeBundle, provider: DeployProvider) -> dict[str, Any]:
        record = dict(await self._deployer.deploy(bundle, provider))
        record["codeBundleId"] = bundle.id
        endpoint = record.get("endpoint")
        if endpoint:
            if await self._deployer.health_check(endpoint):
                record["healthCheckPassed"] = True
            else:
                record["status"] = DeploymentStatus.ERROR.value
                record["healthCheckPassed"] = False
        return record

    async def run(self, bundle: CodeBundle) -> AsyncIterator[StreamChunk]:
        for provider in self._config.deploy_providers:
            yield StreamChunk.thinking(f"Deploying to {provider}...")
            try:
                record = await self._deploy_to(bundle, provider)
            except Exception as exc:  # noqa: BLE001
                logger.warning("deploy_fallback", provider=str(provider), error=str(exc))
                yield StreamChunk.thinking(f"Deployment to {provider} failed: {exc}")
                continue

            checked = self._validator.validate_deployment_result(record)
            if checked.ok:
                logger.info(
                    "deploy_succeeded",
                    provider=str(provider),
                    healthy=checked.value.health_check_passed,
                )
                yield StreamChunk.result(checked.value)
                return

            logger.warning(
                "deploy_fallback",
                provider=str(provider),
                error="schema validation failed",
                errors=[e.path for e in checked.errors],
            )
            yield StreamChunk.thinking(
                f"Deployment to {provider} produced invalid result, trying next provider..."
            )

        yield StreamChunk.thinking(
            "All cloud deployments failed. Providing local deployment instructions."
        )
        record = local_deployment_record(bundle)
        checked = self._validator.validate_deployment_result(record)
        if checked.ok:
            yield StreamChunk.result(checked.value)
        else:
            logger.warning("local_fallback_invalid", errors=[e.path for e in checked.errors])
            yield StreamChunk.result(DeploymentResult.model_construct(**{
                "id": record["id"],
                "code_bundle_id": record["codeBundleId"],
                "provider": DeployProvider.LOCAL,
                "status": DeploymentStatus.STOPPED,
                "endpoint": LOCAL_ENDPOINT,
                "health_check_passed": False,
                "env_vars": record["envVars"],
                "deployment_time": 0,
                "fallback_used": True,
                "local_instructions": LOCAL_INSTRUCTIONS,
            }))
