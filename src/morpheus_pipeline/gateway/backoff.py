from __future__ import annotations

import asyncio
import json
import math
import re
from typing import Any, Awaitable, Callable

import httpx
import structlog

from morpheus_pipeline.core.config import ModelClientConfig
from morpheus_pipeline.core.constants import ModelTool, ResponseMode
from morpheus_pipeline.core.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    OutputShapeError,
    RateLimitError,
)
from morpheus_pipeline.core.types import ModelAnswer, ModelRequest, TokenMetadata
from morpheus_pipeline.resilience.countdown import RateLimitCountdown
from morpheus_pipeline.resilience.retry import RetryPolicy

logger = structlog.get_logger(__name__)

_RETRY_IN_RE = re.compile(r"retry in (\d+(?:\.\d+)?)s", re.IGNORECASE)
_FENCE_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$")

_TOOL_ENTRIES: dict[ModelTool, dict[str, Any]] = {
    ModelTool.CODE_EXECUTION: {"codeExecution": {}},
    ModelTool.SEARCH_GROUNDING: {"googleSearch": {}},
}


def parse_retry_after(message: str, header: str | None = None) -> float | None:
    """Extract a server wait hint in seconds.

    The ``retry in N(.N)s`` pattern in the error message wins over the
    ``Retry-After`` header. Returns ``None`` when neither yields a positive
    number.
    """
    match = _RETRY_IN_RE.search(message or "")
    if match:
        return float(math.ceil(float(match.group(1))))
    if header:
        try:
            seconds = float(header.strip())
        except ValueError:
            return None
        return seconds if seconds > 0 else None
    return None


def extract_answer(data: dict[str, Any]) -> str:
    """Join the text parts of the first candidate, skipping reasoning and code-execution parts."""
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    first = candidates[0] if isinstance(candidates, list) else candidates
    if not isinstance(first, dict):
        raise OutputShapeError("", "list of candidate objects", type(first).__name__)
    content = first.get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    texts = []
    for part in parts:
        if not isinstance(part, dict):
            continue
        if part.get("thought"):
            continue
        if "executableCode" in part or "codeExecutionResult" in part:
            continue
        text = part.get("text")
        if text:
            texts.append(text)
    return "".join(texts)


class BackoffClient:
    """Issues single model calls with classified errors and retry-with-backoff.

    Retryable failures (network errors and HTTP 429/500/502/503) are retried
    by :class:`~morpheus_pipeline.resilience.retry.RetryPolicy`; everything
    else is raised on the first attempt. A 429 carrying a wait hint is waited
    for verbatim and published to :attr:`rate_limit_wait_seconds`.

    Args:
        config: Model client configuration.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).
        sleep: Awaitable sleep used between attempts.
        countdown: Countdown to publish server waits to.
    """

    def __init__(
        self,
        config: ModelClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        countdown: RateLimitCountdown | None = None,
    ) -> None:
        self._config = config or ModelClientConfig()
        self._transport = transport
        self._sleep = sleep
        self._countdown = countdown or RateLimitCountdown()
        self._retry = RetryPolicy(
            max_retries=self._config.max_retries,
            initial_delay=self._config.initial_retry_delay,
            retryable_exceptions=(NetworkError, APIError),
        )
        self._client: httpx.AsyncClient | None = None
        self.call_count = 0
        """Number of HTTP requests issued, retries included."""

    @property
    def config(self) -> ModelClientConfig:
        return self._config

    @property
    def rate_limit_wait_seconds(self) -> int:
        """Seconds until the next attempt of a rate-limited call; ``0`` when idle."""
        return self._countdown.seconds_remaining

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url.rstrip("/"),
                headers={"Content-Type": "application/json"},
                timeout=self._config.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> BackoffClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Calls
    # ------------------------------------------------------------------ #

    async def call(self, request: ModelRequest) -> Any:
        """Perform *request* with retries.

        Returns:
            The parsed JSON answer, or the answer text in
            :attr:`ResponseMode.TEXT`.

        Raises:
            MorpheusError: The last classified error once retries are
                exhausted, or the first fatal one.
        """
        answer = await self.call_with_usage(request)
        return answer.value

    async def call_with_usage(self, request: ModelRequest) -> ModelAnswer:
        """Like :meth:`call` but also returns the token usage of the successful attempt."""
        if not self._config.api_key:
            raise ConfigurationError("No model API key configured")

        model = self._config.model_for(request.tier)
        logger.debug("model_call", model=model, mode=request.response_mode)
        try:
            return await self._retry.execute(
                self._attempt, request, on_wait=self._on_wait, sleep=self._sleep
            )
        finally:
            self._countdown.reset()

    def _on_wait(self, delay: float, server_hinted: bool) -> None:
        logger.info("retry_backoff", delay=delay, server_hinted=server_hinted)
        if server_hinted and not self._config.byok:
            self._countdown.start(delay)

    def build_body(self, request: ModelRequest) -> dict[str, Any]:
        depth = request.thinking_depth or self._config.thinking_for(request.tier)
        generation_config: dict[str, Any] = {
            "thinkingConfig": {"thinkingLevel": str(depth), "includeThoughts": True},
        }
        if request.response_mode != ResponseMode.TEXT:
            generation_config["responseMimeType"] = "application/json"

        body: dict[str, Any] = {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": generation_config,
        }
        tools = [_TOOL_ENTRIES[t] for t in request.tools]
        if tools:
            body["tools"] = tools
        return body

    async def _attempt(self, request: ModelRequest) -> ModelAnswer:
        model = self._config.model_for(request.tier)
        self.call_count += 1
        try:
            resp = await self._http().post(
                f"/models/{model}:generateContent",
                params={"key": self._config.api_key},
                json=self.build_body(request),
            )
        except httpx.RequestError as exc:
            raise NetworkError(f"Network error: {exc}") from exc

        if resp.status_code >= 400:
            raise self._classify(resp)

        data = self._decode(resp)
        usage_block = data.get("usageMetadata")
        usage = TokenMetadata.from_usage(usage_block if isinstance(usage_block, dict) else None)

        text = extract_answer(data)
        if not text:
            raise APIError("Empty response from model API", 500, retryable=True)

        if request.response_mode == ResponseMode.TEXT:
            return ModelAnswer(value=text, token_metadata=usage)
        return ModelAnswer(value=self._parse_json(text), token_metadata=usage)

    @staticmethod
    def _decode(resp: httpx.Response) -> dict[str, Any]:
        """Decode a 2xx generateContent body; a garbled body is retryable."""
        try:
            data = resp.json()
        except ValueError as exc:
            raise APIError(
                f"Malformed response from model API (HTTP {resp.status_code})",
                resp.status_code,
                retryable=True,
            ) from exc
        if not isinstance(data, dict):
            raise OutputShapeError("", "generateContent response", type(data).__name__)
        return data

    @staticmethod
    def _parse_json(text: str) -> Any:
        candidate = text.strip()
        fenced = _FENCE_RE.match(candidate)
        if fenced:
            candidate = fenced.group(1)
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            raise OutputShapeError("", "valid JSON", text[:100]) from exc

    @staticmethod
    def _classify(resp: httpx.Response) -> APIError:
        status = resp.status_code
        try:
            message = resp.json().get("error", {}).get("message") or resp.reason_phrase
        except (ValueError, AttributeError):
            message = resp.reason_phrase

        if status == 429:
            wait = parse_retry_after(message, resp.headers.get("Retry-After"))
            return RateLimitError(message, retry_after=wait)
        if status in (401, 403):
            return AuthenticationError(message, status)
        return APIError(message, status)
