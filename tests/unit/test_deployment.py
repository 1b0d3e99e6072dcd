"""Tests for stages/deployment.py and the deploy services."""
from __future__ import annotations

import json
import uuid

import httpx
import pytest

from morpheus_pipeline.core.config import PipelineConfig
from morpheus_pipeline.core.constants import ChunkKind, DeploymentStatus, DeployProvider
from morpheus_pipeline.core.exceptions import DeploymentError
from morpheus_pipeline.core.types import StreamChunk
from morpheus_pipeline.deploy.base import DeployService
from morpheus_pipeline.deploy.http import DeployConfig, HttpDeployService
from morpheus_pipeline.deploy.local import LOCAL_ENDPOINT, LocalDeployService
from morpheus_pipeline.schemas.code_bundle import CodeBundle
from morpheus_pipeline.schemas.deployment_result import DeploymentResult
from morpheus_pipeline.stages.deployment import LOCAL_INSTRUCTIONS, DeploymentEngine


@pytest.fixture
def bundle() -> CodeBundle:
    return CodeBundle(architecture_doc_id=str(uuid.uuid4()), validated=True)


async def _run(engine: DeploymentEngine, bundle: CodeBundle) -> list[StreamChunk]:
    return [chunk async for chunk in engine.run(bundle)]


# ---------------------------------------------------------------------------
# DeploymentEngine
# ---------------------------------------------------------------------------


async def test_first_provider_healthy(fake_deployer, bundle: CodeBundle) -> None:
    chunks = await _run(DeploymentEngine(fake_deployer), bundle)

    result = chunks[-1].content
    assert chunks[-1].kind == ChunkKind.RESULT
    assert isinstance(result, DeploymentResult)
    assert result.provider == DeployProvider.RAILWAY
    assert result.status == DeploymentStatus.RUNNING
    assert result.health_check_passed is True
    assert result.code_bundle_id == bundle.id
    assert fake_deployer.deployed == [DeployProvider.RAILWAY]
    assert fake_deployer.health_checked == ["https://railway.example.com/agent/"]


async def test_unhealthy_downgrades_status(make_deployer, bundle: CodeBundle) -> None:
    deployer = make_deployer(healthy=False)
    chunks = await _run(DeploymentEngine(deployer), bundle)

    result = chunks[-1].content
    assert result.status == DeploymentStatus.ERROR
    assert result.health_check_passed is False
    assert result.provider == DeployProvider.RAILWAY


async def test_exception_falls_through_to_next_provider(make_deployer, bundle: CodeBundle) -> None:
    deployer = make_deployer(fail=(DeployProvider.RAILWAY,))
    chunks = await _run(DeploymentEngine(deployer), bundle)

    assert chunks[-1].content.provider == DeployProvider.RENDER
    assert deployer.deployed == [DeployProvider.RAILWAY, DeployProvider.RENDER]
    assert any(
        c.kind == ChunkKind.THINKING and "Deployment to railway failed" in c.content for c in chunks
    )


async def test_all_providers_fail_yields_local_fallback(make_deployer, bundle: CodeBundle) -> None:
    deployer = make_deployer(fail=(DeployProvider.RAILWAY, DeployProvider.RENDER))
    chunks = await _run(DeploymentEngine(deployer), bundle)

    result = chunks[-1].content
    assert chunks[-1].kind == ChunkKind.RESULT
    assert result.provider == DeployProvider.LOCAL
    assert result.fallback_used is True
    assert result.local_instructions == LOCAL_INSTRUCTIONS
    assert result.local_instructions.startswith("All cloud deployments failed. To run locally:")
    assert result.endpoint == LOCAL_ENDPOINT
    assert result.code_bundle_id == bundle.id
    assert not any(c.kind == ChunkKind.ERROR for c in chunks)


async def test_invalid_result_falls_through(make_deployer, bundle: CodeBundle) -> None:
    deployer = make_deployer(record={"endpoint": "https://x.example.com", "deploymentTime": -4})
    chunks = await _run(DeploymentEngine(deployer), bundle)

    assert deployer.deployed == [DeployProvider.RAILWAY, DeployProvider.RENDER]
    assert chunks[-1].content.provider == DeployProvider.LOCAL
    assert any("produced invalid result" in str(c.content) for c in chunks)


async def test_configured_provider_order(fake_deployer, bundle: CodeBundle) -> None:
    config = PipelineConfig(deploy_providers=[DeployProvider.RENDER])
    chunks = await _run(DeploymentEngine(fake_deployer, config=config), bundle)
    assert chunks[-1].content.provider == DeployProvider.RENDER
    assert chunks[0].content == "Deploying to render..."


async def test_local_service_ends_on_local_fallback(bundle: CodeBundle) -> None:
    chunks = await _run(DeploymentEngine(LocalDeployService()), bundle)
    result = chunks[-1].content
    assert result.provider == DeployProvider.LOCAL
    assert result.status == DeploymentStatus.STOPPED
    assert result.fallback_used is True
    assert result.local_instructions == LOCAL_INSTRUCTIONS
    assert result.endpoint == LOCAL_ENDPOINT
    assert any("All cloud deployments failed" in str(c.content) for c in chunks)


def test_services_satisfy_protocol() -> None:
    assert isinstance(LocalDeployService(), DeployService)
    assert isinstance(HttpDeployService(DeployConfig(base_url="http://deploy")), DeployService)


# ---------------------------------------------------------------------------
# HttpDeployService
# ---------------------------------------------------------------------------


def _service(handler) -> HttpDeployService:
    return HttpDeployService(
        DeployConfig(base_url="https://deploy.example.com", api_key="secret"),
        transport=httpx.MockTransport(handler),
    )


async def test_http_deploy_posts_bundle(bundle: CodeBundle) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "d1", "endpoint": "https://agent.example.com"})

    async with _service(handler) as svc:
        record = await svc.deploy(bundle, DeployProvider.RENDER)

    assert record["endpoint"] == "https://agent.example.com"
    assert seen[0].url.path == "/deployments"
    assert seen[0].headers["Authorization"] == "Bearer secret"
    body = json.loads(seen[0].content)
    assert body["provider"] == "render"
    assert body["codeBundle"]["id"] == bundle.id


async def test_http_deploy_error_status(bundle: CodeBundle) -> None:
    svc = _service(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(DeploymentError) as exc_info:
        await svc.deploy(bundle, DeployProvider.RAILWAY)
    assert exc_info.value.status_code == 502
    await svc.close()


async def test_http_deploy_network_error(bundle: CodeBundle) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused")

    svc = _service(handler)
    with pytest.raises(DeploymentError):
        await svc.deploy(bundle, DeployProvider.RAILWAY)
    await svc.close()


async def test_http_deploy_rejects_non_object(bundle: CodeBundle) -> None:
    svc = _service(lambda request: httpx.Response(200, json=["not", "a", "record"]))
    with pytest.raises(DeploymentError):
        await svc.deploy(bundle, DeployProvider.RAILWAY)
    await svc.close()


@pytest.mark.parametrize("status, healthy", [(200, True), (204, True), (503, False)])
async def test_http_health_check(status: int, healthy: bool) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(status)

    svc = _service(handler)
    assert await svc.health_check("https://agent.example.com/") is healthy
    assert seen == ["https://agent.example.com/health"]
    await svc.close()


async def test_http_health_check_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused")

    svc = _service(handler)
    assert await svc.health_check("https://agent.example.com") is False
    await svc.close()


@pytest.mark.parametrize("status", [204, 404])
async def test_http_teardown_tolerates_missing(status: int) -> None:
    svc = _service(lambda request: httpx.Response(status))
    await svc.teardown("d1")
    await svc.close()


async def test_http_teardown_failure() -> None:
    svc = _service(lambda request: httpx.Response(500))
    with pytest.raises(DeploymentError):
        await svc.teardown("d1")
    await svc.close()


async def test_local_service_refuses_to_deploy(bundle: CodeBundle) -> None:
    svc = LocalDeployService()
    with pytest.raises(DeploymentError) as exc_info:
        await svc.deploy(bundle, DeployProvider.RAILWAY)
    assert exc_info.value.details["provider"] == "railway"
    assert await svc.health_check(LOCAL_ENDPOINT) is False
    assert await svc.teardown("d1") is None
