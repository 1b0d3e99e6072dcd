from __future__ import annotations

from typing import Any

from morpheus_pipeline.core.constants import DeployProvider
from morpheus_pipeline.core.exceptions import DeploymentError
from morpheus_pipeline.schemas.code_bundle import CodeBundle

LOCAL_ENDPOINT = "http://localhost:3000"


class LocalDeployService:
    """Deployer used when no cloud provider is configured.

    Every deploy fails with :class:`DeploymentError`, so the deployment stage
    falls through all providers and ends on its local fallback with run
    instructions.
    """

    async def deploy(self, bundle: CodeBundle, provider: DeployProvider) -> dict[str, Any]:
        raise DeploymentError(
            f"No cloud provider configured for {provider}",
            details={"provider": str(provider), "codeBundleId": bundle.id},
        )

    async def health_check(self, endpoint: str) -> bool:
        return False

    async def teardown(self, deployment_id: str) -> None:
        return None
