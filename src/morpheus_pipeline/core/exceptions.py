from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from morpheus_pipeline.core.constants import PipelineStage
    from morpheus_pipeline.validation.validator import FieldError

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503})


class MorpheusError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        code: Optional machine-readable error code.
        details: Arbitrary key/value context about the error.
        status_code: HTTP status code when the error originates from an
            API response (``None`` when not applicable).
        retry_after: Server-specified delay in seconds before retrying
            (``None`` when unknown or not applicable).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def is_retryable(self) -> bool:
        """Whether the operation that raised this error can be retried."""
        return False


class ConfigurationError(MorpheusError): ...


class DeploymentError(MorpheusError): ...


# ---------------------------------------------------------------------------
# Model API errors
# ---------------------------------------------------------------------------


class NetworkError(MorpheusError):
    """A transport-level failure (DNS, TCP, TLS, timeout).

    Always retryable.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


class APIError(MorpheusError):
    """The model API answered with an HTTP error status.

    Retryable for 429/500/502/503 unless *retryable* is given explicitly.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        *,
        retryable: bool | None = None,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=str(status_code),
            details=details,
            status_code=status_code,
            retry_after=retry_after,
        )
        if retryable is None:
            retryable = status_code in RETRYABLE_STATUS_CODES
        self._retryable = retryable

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return self._retryable


class RateLimitError(APIError):
    """HTTP 429. Always retryable; ``retry_after`` carries the server hint."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message, 429, retryable=True, retry_after=retry_after, details=details
        )


class AuthenticationError(APIError):
    """HTTP 401/403. Never retryable."""

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, status_code, retryable=False, details=details)


class OutputShapeError(MorpheusError):
    """The raw model answer could not be parsed into the declared format."""

    def __init__(self, path: str, expected: str, received: str) -> None:
        location = path or "<root>"
        super().__init__(
            f"Output shape error at {location}: expected {expected}, received {received}",
            code="output_shape",
        )
        self.path = path
        self.expected = expected
        self.received = received


# ---------------------------------------------------------------------------
# Pipeline errors
# ---------------------------------------------------------------------------


class SchemaValidationError(MorpheusError):
    """Structured output failed its schema after every validation attempt."""

    def __init__(self, message: str, errors: list[FieldError]) -> None:
        super().__init__(message, code="schema_validation")
        self.errors = errors


class StageError(MorpheusError):
    """A pipeline stage ended in its Failed state."""

    def __init__(
        self,
        stage: PipelineStage,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code="stage_failed", details=details)
        self.stage = stage


class PrerequisiteMissingError(MorpheusError):
    """A stage was started without the artifact it is derived from."""


class BuildNotFoundError(MorpheusError):
    """No build with the given id is registered."""
