"""Error taxonomy for generated CRUD services."""

from typing import Any


class CrudError(Exception):
    """Base class for all doccrud errors."""


class ConfigurationError(CrudError):
    """Raised when generator options are malformed. Fatal to construction."""


class SchemaBootstrapError(CrudError):
    """Raised when the collection or one of its indexes could not be created."""

    def __init__(self, message: str, collection: str, index: str | None = None) -> None:
        self.collection = collection
        self.index = index
        super().__init__(message)


class ValidationError(CrudError):
    """Raised when a payload does not satisfy the collection schema.

    Attributes:
        errors: One entry per failing field, each with ``field``, ``message``
            and ``code`` keys.
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class MissingIdentifierError(CrudError):
    """Raised when an update is requested without an identifier."""


class PersistenceError(CrudError):
    """Raised when the store rejects a write or returns a malformed response."""


class InvalidQueryError(CrudError):
    """Raised when query parameters cannot be turned into a query."""


class UnknownOperationError(CrudError):
    """Raised when dispatching a name that has no subscribed handler."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No handler subscribed for operation {name!r}")
