from __future__ import annotations

from typing import Any, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from app.core.errors import ClientError


ModelT = TypeVar("ModelT", bound=BaseModel)


def field_errors(exc: ValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{field, message}`` pairs."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "__root__",
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


def validate_schema(
    data: Optional[Mapping[str, Any]],
    schema: type[ModelT],
    *,
    what: str = "input",
) -> ModelT:
    """Validate an untrusted mapping against a declared field set.

    Unknown fields are rejected by the schema (``extra="forbid"``), so the
    returned model only ever carries allow-listed keys.
    """
    try:
        return schema.model_validate(dict(data or {}))
    except ValidationError as e:
        raise ClientError(f"Unable to validate {what}", field_errors(e)) from e
