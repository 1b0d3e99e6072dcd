from morpheus_pipeline.validation.validator import (
    FieldError,
    SchemaValidator,
    ValidationResult,
)

__all__ = ["FieldError", "SchemaValidator", "ValidationResult"]
