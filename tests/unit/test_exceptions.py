"""Tests for core/exceptions.py: the error hierarchy and retry classification."""
from __future__ import annotations

import pytest

from morpheus_pipeline.core.constants import PipelineStage
from morpheus_pipeline.core.exceptions import (
    APIError,
    AuthenticationError,
    BuildNotFoundError,
    ConfigurationError,
    DeploymentError,
    MorpheusError,
    NetworkError,
    OutputShapeError,
    PrerequisiteMissingError,
    RateLimitError,
    SchemaValidationError,
    StageError,
)
from morpheus_pipeline.validation.validator import FieldError


# ---------------------------------------------------------------------------
# MorpheusError
# ---------------------------------------------------------------------------


def test_base_exception_message() -> None:
    exc = MorpheusError("something went wrong")
    assert str(exc) == "something went wrong"
    assert exc.message == "something went wrong"


def test_base_exception_defaults() -> None:
    exc = MorpheusError("msg", details=None)
    assert exc.code is None
    assert exc.details == {}
    assert exc.status_code is None
    assert exc.retry_after is None
    assert exc.is_retryable is False


@pytest.mark.parametrize(
    "cls",
    [ConfigurationError, DeploymentError, PrerequisiteMissingError, BuildNotFoundError],
)
def test_simple_subclasses(cls: type[MorpheusError]) -> None:
    exc = cls("msg", code="X", details={"k": "v"})
    assert isinstance(exc, MorpheusError)
    assert exc.details == {"k": "v"}
    assert not exc.is_retryable


# ---------------------------------------------------------------------------
# Model API errors
# ---------------------------------------------------------------------------


def test_network_error_is_retryable() -> None:
    assert NetworkError("Network error: refused").is_retryable


@pytest.mark.parametrize(
    "status, retryable",
    [(429, True), (500, True), (502, True), (503, True), (400, False), (404, False), (504, False)],
)
def test_api_error_retryable_by_status(status: int, retryable: bool) -> None:
    exc = APIError("boom", status)
    assert exc.is_retryable is retryable
    assert exc.status_code == status
    assert exc.code == str(status)


def test_api_error_explicit_retryable_wins() -> None:
    assert APIError("boom", 400, retryable=True).is_retryable
    assert not APIError("boom", 503, retryable=False).is_retryable


def test_rate_limit_error() -> None:
    exc = RateLimitError("Quota exceeded", retry_after=13)
    assert isinstance(exc, APIError)
    assert exc.status_code == 429
    assert exc.retry_after == 13
    assert exc.is_retryable


@pytest.mark.parametrize("status", [401, 403])
def test_authentication_error_never_retryable(status: int) -> None:
    exc = AuthenticationError("API key not valid", status)
    assert exc.status_code == status
    assert not exc.is_retryable


def test_output_shape_error_message() -> None:
    exc = OutputShapeError("", "valid JSON", "not json")
    assert exc.message == "Output shape error at <root>: expected valid JSON, received not json"
    assert exc.code == "output_shape"
    nested = OutputShapeError("files.0", "object", "string")
    assert nested.message.startswith("Output shape error at files.0:")


# ---------------------------------------------------------------------------
# Pipeline errors
# ---------------------------------------------------------------------------


def test_schema_validation_error_carries_field_errors() -> None:
    errors = [FieldError(path="complexityScore", message="too low", expected="1..10", received="0")]
    exc = SchemaValidationError("Schema validation failed for AgentSpec after 3 attempts", errors)
    assert exc.errors == errors
    assert exc.code == "schema_validation"


def test_stage_error_keeps_stage() -> None:
    exc = StageError(PipelineStage.DEPLOYING, "Stage ended without a result")
    assert exc.stage == PipelineStage.DEPLOYING
    assert exc.code == "stage_failed"
    assert str(exc) == "Stage ended without a result"
