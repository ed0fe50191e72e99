"""Validation of record payloads against a collection schema.

A schema is a pydantic model. The identifier field is store-managed and is
removed before validation; it is never re-attached here.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from doccrud.domain.exceptions import ValidationError

ID_FIELD = "id"


def has_identifier(record: Mapping[str, Any]) -> bool:
    """Whether a record carries an identifier. Falsy values such as 0 or "" count."""
    return record.get(ID_FIELD) is not None


def _error_details(error: PydanticValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in detail["loc"]) or "__root__",
            "message": detail["msg"],
            "code": detail["type"],
        }
        for detail in error.errors()
    ]


class ValidationGate:
    """Sanitizes payloads before they are persisted.

    Attributes:
        schema: Pydantic model the payload must satisfy, or None to accept
            any payload unchanged.
        convert: Coerce values to the declared types (lax mode). When False,
            validation runs in strict mode.
        strip_unknown: Drop fields the schema does not declare. When False,
            undeclared fields pass through untouched.
    """

    def __init__(
        self,
        schema: type[BaseModel] | None = None,
        convert: bool = True,
        strip_unknown: bool = True,
        id_field: str = ID_FIELD,
    ) -> None:
        self.schema = schema
        self.convert = convert
        self.strip_unknown = strip_unknown
        self.id_field = id_field

    def validate(self, payload: Any) -> Any:
        """Validate a single payload or a list of payloads.

        Raises:
            ValidationError: If a payload does not satisfy the schema.
        """
        if self.schema is None:
            return payload

        if isinstance(payload, (list, tuple)):
            return [self._validate_one(self.schema, item) for item in payload]

        return self._validate_one(self.schema, payload)

    def _validate_one(self, schema: type[BaseModel], payload: Any) -> dict[str, Any]:
        if not isinstance(payload, Mapping):
            raise ValidationError(
                f"Expected an object to validate, got {type(payload).__name__}",
                errors=[
                    {"field": "__root__", "message": "Expected an object", "code": "invalid_type"}
                ],
            )

        data = {k: v for k, v in payload.items() if k != self.id_field}

        try:
            instance = schema.model_validate(data, strict=not self.convert)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Payload does not match {schema.__name__}", errors=_error_details(e)
            ) from e

        declared = schema.model_fields
        dumped = instance.model_dump(mode="json")

        # Absent optional fields stay absent unless they declare a real default
        keep = set(instance.model_fields_set)
        for name, info in declared.items():
            if not info.is_required() and info.get_default(call_default_factory=True) is not None:
                keep.add(name)

        result = {k: v for k, v in dumped.items() if k in keep and k in declared}

        if not self.strip_unknown:
            result.update({k: v for k, v in data.items() if k not in declared})

        return result
