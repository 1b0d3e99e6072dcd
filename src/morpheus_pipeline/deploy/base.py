from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from morpheus_pipeline.core.constants import DeployProvider
from morpheus_pipeline.schemas.code_bundle import CodeBundle


@runtime_checkable
class DeployService(Protocol):
    """Structural type for the deployment collaborator.

    ``deploy`` returns the raw (camelCase) deployment record; the deployment
    stage validates it. Failures are raised.
    """

    async def deploy(
        self, bundle: CodeBundle, provider: DeployProvider
    ) -> Mapping[str, Any]: ...

    async def health_check(self, endpoint: str) -> bool: ...

    async def teardown(self, deployment_id: str) -> None: ...
