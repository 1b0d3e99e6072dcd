"""Deployment over a provider-agnostic HTTP deploy API."""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from morpheus_pipeline.core.constants import DeployProvider
from morpheus_pipeline.core.exceptions import DeploymentError
from morpheus_pipeline.schemas.code_bundle import CodeBundle

logger = structlog.get_logger(__name__)


class DeployConfig(BaseModel):
    """Configuration for :class:`HttpDeployService`.

    Attributes:
        base_url: Base URL of the deploy API.
        api_key: Bearer token sent with every request.
        timeout: Request timeout in seconds.
        health_path: Path appended to a deployed endpoint for health checks.
    """

    base_url: str
    api_key: str | None = None
    timeout: float = 60.0
    health_path: str = "/health"
    extra_headers: dict[str, str] = Field(default_factory=dict)


class HttpDeployService:
    """Deploys bundles through ``POST /deployments`` on a deploy API.

    Usage::

        async with HttpDeployService(DeployConfig(base_url="https://deploy.example")) as svc:
            record = await svc.deploy(bundle, DeployProvider.RAILWAY)
    """

    def __init__(
        self,
        config: DeployConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json", **self._config.extra_headers}
            if self._config.api_key:
                headers["Authorization"] = f"Bearer {self._config.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url.rstrip("/"),
                headers=headers,
                timeout=self._config.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpDeployService:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def deploy(self, bundle: CodeBundle, provider: DeployProvider) -> dict[str, Any]:
        try:
            resp = await self._http().post(
                "/deployments",
                json={"provider": str(provider), "codeBundle": bundle.to_wire()},
            )
        except httpx.RequestError as exc:
            raise DeploymentError(f"Deploy request to {provider} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise DeploymentError(
                f"Deploy to {provider} failed with HTTP {resp.status_code}",
                status_code=resp.status_code,
                details={"body": resp.text[:500]},
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise DeploymentError(f"Deploy API returned non-JSON for {provider}") from exc
        if not isinstance(data, dict):
            raise DeploymentError(f"Deploy API returned {type(data).__name__} for {provider}")
        logger.info("deploy_submitted", provider=str(provider), bundle_id=bundle.id)
        return data

    async def health_check(self, endpoint: str) -> bool:
        url = endpoint.rstrip("/") + self._config.health_path
        try:
            resp = await self._http().get(url)
        except httpx.RequestError as exc:
            logger.warning("health_check_unreachable", endpoint=endpoint, error=str(exc))
            return False
        return resp.status_code < 400

    async def teardown(self, deployment_id: str) -> None:
        try:
            resp = await self._http().delete(f"/deployments/{deployment_id}")
        except httpx.RequestError as exc:
            raise DeploymentError(f"Teardown of {deployment_id} failed: {exc}") from exc
        if resp.status_code >= 400 and resp.status_code != 404:
            raise DeploymentError(
                f"Teardown of {deployment_id} failed with HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
