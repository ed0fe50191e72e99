"""doccrud - CRUD services generated over a document store.

Example:
    from doccrud import Dispatcher, generate_crud_services
    from doccrud.infrastructure.persistence import get_db_manager

    dispatcher = Dispatcher()
    services = await generate_crud_services(
        "entity.User", {"store": get_db_manager().document_store}
    )
    dispatcher.subscribe_map(services.namespace, services.map)
"""

from doccrud.application.services import (
    CollectionOperations,
    GeneratedServices,
    generate_crud_services,
)
from doccrud.core.dispatch import CrudOperation, Dispatcher, HookDecorator
from doccrud.domain.entities import CollectionConfig, DocumentStore, Query, r
from doccrud.domain.exceptions import (
    ConfigurationError,
    CrudError,
    InvalidQueryError,
    MissingIdentifierError,
    PersistenceError,
    SchemaBootstrapError,
    UnknownOperationError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "CollectionConfig",
    "CollectionOperations",
    "ConfigurationError",
    "CrudError",
    "CrudOperation",
    "Dispatcher",
    "DocumentStore",
    "GeneratedServices",
    "HookDecorator",
    "InvalidQueryError",
    "MissingIdentifierError",
    "PersistenceError",
    "Query",
    "SchemaBootstrapError",
    "UnknownOperationError",
    "ValidationError",
    "generate_crud_services",
    "r",
]
