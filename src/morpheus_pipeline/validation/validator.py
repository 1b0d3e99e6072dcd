"""Structural checks for the artifacts produced by the model.

Each artifact kind maps to a pydantic model in :mod:`morpheus_pipeline.schemas`
whose ``before`` validators do the tolerant coercion (unknown enum strings to a
default, non-UUID ids to fresh UUIDs). Whatever pydantic still rejects is
reported as an ordered list of :class:`FieldError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from morpheus_pipeline.core.constants import ArtifactKind
from morpheus_pipeline.schemas.agent_spec import AgentSpec
from morpheus_pipeline.schemas.architecture_doc import ArchitectureDoc
from morpheus_pipeline.schemas.deployment_result import DeploymentResult

T = TypeVar("T", bound=BaseModel)

_SCHEMAS: dict[ArtifactKind, type[BaseModel]] = {
    ArtifactKind.AGENT_SPEC: AgentSpec,
    ArtifactKind.ARCHITECTURE_DOC: ArchitectureDoc,
    ArtifactKind.DEPLOYMENT_RESULT: DeploymentResult,
}

_RECEIVED_MAX = 100


@dataclass(frozen=True)
class FieldError:
    path: str
    """Dotted camelCase path, ``""`` for the root."""
    message: str
    expected: str
    received: str

    def to_dict(self) -> dict[str, str]:
        return {
            "path": self.path,
            "message": self.message,
            "expected": self.expected,
            "received": self.received,
        }


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """Either ``value`` or a non-empty ``errors`` list, never both."""

    value: T | None = None
    errors: list[FieldError] = field(default_factory=list)

    def __post_init__(self) -> None:
        if (self.value is None) == (not self.errors):
            raise ValueError("ValidationResult needs exactly one of value or errors")

    @property
    def ok(self) -> bool:
        return self.value is not None


def _field_errors(exc: ValidationError) -> list[FieldError]:
    errors = []
    for err in exc.errors(include_url=False):
        ctx = err.get("ctx") or {}
        expected = ", ".join(f"{k}={v}" for k, v in ctx.items()) or err["type"]
        received = "missing" if err["type"] == "missing" else repr(err.get("input"))
        errors.append(
            FieldError(
                path=".".join(str(p) for p in err["loc"]),
                message=err["msg"],
                expected=expected,
                received=received[:_RECEIVED_MAX],
            )
        )
    return errors


class SchemaValidator:
    """Pure validation of raw model output per :class:`ArtifactKind`."""

    def validate(self, kind: ArtifactKind, raw: Any) -> ValidationResult[Any]:
        schema = _SCHEMAS[ArtifactKind(kind)]
        return self._check(schema, raw)

    def validate_agent_spec(self, raw: Any) -> ValidationResult[AgentSpec]:
        return self._check(AgentSpec, raw)

    def validate_architecture_doc(self, raw: Any) -> ValidationResult[ArchitectureDoc]:
        return self._check(ArchitectureDoc, raw)

    def validate_deployment_result(self, raw: Any) -> ValidationResult[DeploymentResult]:
        return self._check(DeploymentResult, raw)

    @staticmethod
    def _check(schema: type[T], raw: Any) -> ValidationResult[T]:
        if isinstance(raw, BaseModel):
            raw = raw.model_dump(by_alias=True)
        try:
            return ValidationResult(value=schema.model_validate(raw))
        except ValidationError as exc:
            return ValidationResult(errors=_field_errors(exc))
