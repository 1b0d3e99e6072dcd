"""Shared base model and tolerant coercion helpers for pipeline artifacts."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ArtifactModel(BaseModel):
    """Immutable record with camelCase wire names and snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the camelCase JSON shape exchanged with the model."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def new_id() -> str:
    return str(uuid.uuid4())


def flex_id(value: Any) -> Any:
    """Keep UUID strings, replace any other string with a fresh UUID.

    Non-strings are passed through so the field's type check rejects them.
    """
    if not isinstance(value, str):
        return value
    try:
        uuid.UUID(value)
    except ValueError:
        return new_id()
    return value


def choice(value: Any, valid: Iterable[str], default: str) -> Any:
    """Coerce an out-of-enum string to *default*; leave other types for the type check."""
    if isinstance(value, str) and value not in valid:
        return default
    return value


def object_or_empty(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}
