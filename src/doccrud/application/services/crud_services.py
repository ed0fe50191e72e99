"""Generation of CRUD services bound to one collection.

``generate_crud_services`` validates the options, bootstraps the collection
and returns an operation map ready to be subscribed on a Dispatcher::

    services = await generate_crud_services(
        "entity.User",
        {"store": store, "record_schema": UserSchema, "indexes": {"email": "email"}},
    )
    dispatcher.subscribe_map(services.namespace, services.map)

    user = await dispatcher.dispatch("entity.User.create", {"first_name": "Ada"})
"""

from collections.abc import Callable, Mapping
from typing import Any, NamedTuple

from doccrud.application.services.save_pipeline import SavePipeline
from doccrud.application.services.schema_bootstrapper import BootstrapResult, SchemaBootstrapper
from doccrud.core.dispatch.dispatch_events import CRUD_OPERATIONS, CrudOperation, qualify
from doccrud.core.logging import LoggingContext, get_logger
from doccrud.domain.entities.collection_config import CollectionConfig
from doccrud.domain.entities.document_store import Record
from doccrud.domain.entities.operation_context import OperationContext
from doccrud.domain.entities.query import Query
from doccrud.domain.exceptions import InvalidQueryError, MissingIdentifierError
from doccrud.domain.services.query_builder import build_query
from doccrud.domain.services.validation_gate import ID_FIELD, ValidationGate, has_identifier

logger = get_logger(__name__)

REMOVE_LOAD_KEY = "load"


class CollectionOperations:
    """The operations generated for one collection.

    Every operation takes an OperationContext; ``as_map()`` exposes them by
    name for ``Dispatcher.subscribe_map``.
    """

    def __init__(self, namespace: str, config: CollectionConfig) -> None:
        if not config.collection_name:
            raise ValueError("config.collection_name must be resolved before building operations")
        self.namespace = namespace
        self.config = config
        self.collection: str = config.collection_name
        self.store = config.store
        self.gate = ValidationGate(
            config.record_schema,
            convert=config.convert,
            strip_unknown=config.strip_unknown,
        )
        self.pipeline = SavePipeline(namespace, self.collection, self.store)

    def as_map(self) -> dict[str, Callable[[OperationContext], Any]]:
        return {name: getattr(self, name) for name in CRUD_OPERATIONS}

    def table(self) -> Query:
        """A query scanning the whole bound collection."""
        return Query(self.collection)

    async def query(self, context: OperationContext) -> Any:
        """Run a caller-supplied transform of the collection query."""
        transform = context.params
        if not callable(transform):
            raise InvalidQueryError("query expects a callable receiving the collection query")

        query = transform(self.table())
        if not isinstance(query, Query):
            raise InvalidQueryError(
                f"query transform must return a Query, got {type(query).__name__}"
            )
        return await self.store.run(query)

    async def find(self, context: OperationContext) -> list[Record]:
        query = build_query(self.collection, context.params)
        result = await self.store.run(query)
        if query.is_keyed:
            return [result] if result is not None else []
        return result

    async def find_one(self, context: OperationContext) -> Record | None:
        query = build_query(self.collection, {"filters": context.params}).limit(1)
        results = await self.store.run(query)
        return results[0] if results else None

    async def find_by_id(self, context: OperationContext) -> Record | None:
        return await self.store.run(self.table().get(context.params))

    async def create(self, context: OperationContext) -> Record | list[Record]:
        return await context.dispatch(qualify(self.namespace, CrudOperation.SAVE), context.params)

    async def update(self, context: OperationContext) -> Record:
        """Update a record by ``params["id"]`` without validation or hooks.

        Raises:
            MissingIdentifierError: If the payload carries no identifier.
        """
        params = context.params
        if not isinstance(params, Mapping) or not has_identifier(params):
            raise MissingIdentifierError(
                "You have to provide an id along with the update payload"
            )
        return await self.pipeline.update(params[ID_FIELD], dict(params))

    async def validate(self, context: OperationContext) -> Any:
        return self.gate.validate(context.params)

    async def save(self, context: OperationContext) -> Record | list[Record]:
        return await self.pipeline.save(context)

    async def remove(self, context: OperationContext) -> list[Record] | dict[str, int]:
        """Delete every matched record.

        With a truthy ``load`` parameter the deleted records are returned,
        otherwise a ``{"deleted": n}`` summary.
        """
        params = context.params
        load = False
        if isinstance(params, Mapping):
            params = dict(params)
            load = bool(params.pop(REMOVE_LOAD_KEY, False))

        result = await self.store.delete(build_query(self.collection, params), return_changes=load)
        logger.info("Records removed", collection=self.collection, deleted=result.deleted)

        if load:
            return [change.old_val for change in result.changes if change.old_val is not None]
        return {"deleted": result.deleted}


class GeneratedServices(NamedTuple):
    namespace: str
    map: dict[str, Callable[[OperationContext], Any]]
    operations: CollectionOperations
    bootstrap: BootstrapResult | None = None


async def generate_crud_services(
    namespace: str, config: CollectionConfig | Mapping[str, Any] | None = None
) -> GeneratedServices:
    """Generate the CRUD operations of one collection.

    Args:
        namespace: Dot-delimited dispatch prefix. Its last segment is the
            default collection name.
        config: A CollectionConfig, or a mapping of its fields.

    Raises:
        ConfigurationError: If the options are malformed.
        SchemaBootstrapError: If the collection or an index could not be created.
    """
    resolved = CollectionConfig.from_options(namespace, config)
    operations = CollectionOperations(namespace, resolved)

    with LoggingContext(namespace=namespace, collection=operations.collection):
        bootstrap = None
        if resolved.auto_create_collection:
            bootstrap = await SchemaBootstrapper(resolved.store).ensure(
                operations.collection, resolved.indexes
            )
        else:
            logger.debug("Skipping collection bootstrap")

        services = GeneratedServices(namespace, operations.as_map(), operations, bootstrap)
        logger.info("CRUD services generated", operations=list(services.map))
    return services
