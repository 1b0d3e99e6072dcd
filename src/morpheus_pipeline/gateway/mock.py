from __future__ import annotations

from typing import Any, AsyncIterator, Callable

from morpheus_pipeline.core.exceptions import MorpheusError
from morpheus_pipeline.core.types import ModelRequest, StreamChunk, TokenMetadata


class MockModelGateway:
    """In-memory model collaborator for tests and demos.

    Usage::

        mock = MockModelGateway()
        mock.register("analyze_requirements", {"id": "...", ...})       # static answer
        mock.register("generate_code", [first, second])                 # one per call
        mock.register("design_architecture", lambda req: {...})         # dynamic answer
        mock.register("generate_ui", APIError("boom", 400))            # error chunk

    A list answers successive calls in order and repeats its last item once
    exhausted. An exception (raised or returned) becomes a terminal ``error``
    chunk.
    """

    def __init__(self, token_metadata: TokenMetadata | None = None) -> None:
        self._responses: dict[str, Any] = {}
        self._cursor: dict[str, int] = {}
        self._token_metadata = token_metadata or TokenMetadata(
            prompt_token_count=10,
            candidates_token_count=20,
            thoughts_token_count=5,
            total_token_count=35,
        )
        self.calls: list[ModelRequest] = []
        self.rate_limit_wait_seconds = 0

    # ------------------------------------------------------------------ #
    # Registration helpers
    # ------------------------------------------------------------------ #

    def register(
        self,
        purpose: str,
        response: Any | list[Any] | Callable[[ModelRequest], Any],
    ) -> None:
        """Register the answer for requests whose ``purpose`` equals *purpose*."""
        self._responses[purpose] = response
        self._cursor[purpose] = 0

    def _next_response(self, request: ModelRequest) -> Any:
        if request.purpose not in self._responses:
            raise KeyError(
                f"MockModelGateway: no response registered for '{request.purpose}'"
            )
        response = self._responses[request.purpose]
        if isinstance(response, list):
            index = min(self._cursor[request.purpose], len(response) - 1)
            self._cursor[request.purpose] += 1
            response = response[index]
        if callable(response) and not isinstance(response, Exception):
            response = response(request)
        return response

    # ------------------------------------------------------------------ #
    # ModelGateway implementation
    # ------------------------------------------------------------------ #

    async def invoke(self, request: ModelRequest) -> AsyncIterator[StreamChunk]:
        self.calls.append(request)
        yield StreamChunk.thinking(f"mock: {request.purpose}")
        try:
            response = self._next_response(request)
        except MorpheusError as exc:
            yield StreamChunk.failure(exc.message, exc)
            return
        if isinstance(response, MorpheusError):
            yield StreamChunk.failure(response.message, response)
            return
        if isinstance(response, Exception):
            yield StreamChunk.failure(str(response), response)
            return
        yield StreamChunk.result(response, self._token_metadata)

    # ------------------------------------------------------------------ #
    # Test helpers
    # ------------------------------------------------------------------ #

    def call_count(self, purpose: str | None = None) -> int:
        if purpose is None:
            return len(self.calls)
        return sum(1 for r in self.calls if r.purpose == purpose)

    def assert_called(self, purpose: str) -> None:
        purposes = [r.purpose for r in self.calls]
        assert purpose in purposes, f"Expected call for '{purpose}', got: {purposes}"

    def reset(self) -> None:
        self.calls.clear()
        self._responses.clear()
        self._cursor.clear()
