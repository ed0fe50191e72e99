"""Configuration of one generated collection."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from doccrud.core.config import get_settings
from doccrud.domain.entities.document_store import DocumentStore
from doccrud.domain.entities.index_spec import IndexSpec, parse_index_spec
from doccrud.domain.exceptions import ConfigurationError


def extract_collection_name(namespace: str) -> str | None:
    """Return the segment after the last dot of a namespace, if any.

    >>> extract_collection_name("entity.User")
    'User'
    """
    head, dot, tail = namespace.rpartition(".")
    if not dot or not tail:
        return None
    return tail


class CollectionConfig(BaseModel):
    """Options of a generated collection.

    Attributes:
        store: Document store driver the operations run against.
        collection_name: Collection name. Derived from the namespace when omitted.
        indexes: Secondary indexes by name, in any of the four supported shapes.
        record_schema: Pydantic model validating saved payloads.
        auto_create_collection: Create the collection and indexes on generation.
        convert: Coerce payload values to the schema's types (lax validation).
        strip_unknown: Drop payload fields the schema does not declare.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    store: DocumentStore
    collection_name: str | None = None
    indexes: dict[str, Any] = Field(default_factory=dict)
    record_schema: type[BaseModel] | None = None
    auto_create_collection: bool = True
    convert: bool = Field(default_factory=lambda: get_settings().validation_convert)
    strip_unknown: bool = Field(default_factory=lambda: get_settings().validation_strip_unknown)

    @field_validator("indexes")
    @classmethod
    def classify_indexes(cls, v: dict[str, Any]) -> dict[str, IndexSpec]:
        """Resolve every index declaration to its variant once, up front."""
        return {name: parse_index_spec(name, spec) for name, spec in v.items()}

    @classmethod
    def from_options(
        cls, namespace: str, options: "CollectionConfig | Mapping[str, Any] | None"
    ) -> "CollectionConfig":
        """Validate generator options and fill in the derived collection name.

        Raises:
            ConfigurationError: If the options are malformed or no collection
                name can be determined.
        """
        if not isinstance(namespace, str) or not namespace:
            raise ConfigurationError(f"Namespace must be a non-empty string, got {namespace!r}")

        if isinstance(options, CollectionConfig):
            config = options
        else:
            try:
                config = cls.model_validate(dict(options or {}))
            except PydanticValidationError as e:
                raise ConfigurationError(f"Invalid options for {namespace!r}: {e}") from e

        if config.collection_name:
            return config

        collection_name = extract_collection_name(namespace)
        if collection_name is None:
            raise ConfigurationError(
                f"Cannot derive a collection name from namespace {namespace!r}; "
                "pass collection_name explicitly"
            )
        return config.model_copy(update={"collection_name": collection_name})
