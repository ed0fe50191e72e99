"""Save pipeline: validate, notify, insert-or-update, notify.

Steps run strictly in sequence. A failure while validating or persisting
propagates to the caller and the after-hook is not fired.
"""

import copy
from collections.abc import Mapping
from typing import Any

from doccrud.core.dispatch.dispatch_events import CrudOperation, qualify
from doccrud.core.logging import get_logger
from doccrud.domain.entities.document_store import DocumentStore, Record
from doccrud.domain.entities.operation_context import OperationContext
from doccrud.domain.entities.query import Query
from doccrud.domain.exceptions import PersistenceError
from doccrud.domain.services.validation_gate import ID_FIELD, has_identifier

logger = get_logger(__name__)


class SavePipeline:
    """Persists payloads of one collection.

    Attributes:
        namespace: Dispatch prefix of the owning services.
        collection: Name of the bound collection.
        store: Document store driver.
    """

    def __init__(self, namespace: str, collection: str, store: DocumentStore) -> None:
        self.namespace = namespace
        self.collection = collection
        self.store = store

    async def save(self, context: OperationContext) -> Record | list[Record]:
        """Validate through the dispatcher, then insert or update.

        A mapping payload carrying an ``id`` is an update; anything else is
        inserted. The identifier is stripped by validation and merged back
        before persisting.
        """
        params = context.params
        data = await context.dispatch(qualify(self.namespace, CrudOperation.VALIDATE), params)

        if isinstance(params, Mapping) and isinstance(data, Mapping) and has_identifier(params):
            data = {**data, ID_FIELD: params[ID_FIELD]}

        save_name = qualify(self.namespace, CrudOperation.SAVE)
        # Observers get their own copy; they cannot transform what is persisted
        await context.emit_before(save_name, copy.deepcopy(data))

        if isinstance(data, Mapping) and has_identifier(data):
            result: Record | list[Record] = await self.update(data[ID_FIELD], data)
        else:
            result = await self.insert(data)

        await context.emit_after(save_name, result)
        return result

    async def insert(self, data: Record | list[Record]) -> Record | list[Record]:
        """Insert one record or a batch, attaching the generated identifiers.

        Generated keys come back in submission order for the records that
        had no identifier; they are paired positionally with those records.

        Raises:
            PersistenceError: If the store does not report a well-formed list
                of generated keys.
        """
        if not isinstance(data, (Mapping, list, tuple)):
            raise PersistenceError(
                f"Cannot insert {type(data).__name__} into {self.collection!r}: "
                "expected an object or a list of objects"
            )

        result = await self.store.insert(self.collection, data)
        generated_keys = result.generated_keys

        records = [data] if isinstance(data, Mapping) else list(data)
        missing = [i for i, record in enumerate(records) if not has_identifier(record)]

        if not isinstance(generated_keys, list) or len(generated_keys) != len(missing):
            raise PersistenceError(
                f"Insert into {self.collection!r} returned malformed generated keys: "
                f"{generated_keys!r} for {len(missing)} new record(s)"
            )

        saved = [dict(record) for record in records]
        for index, key in zip(missing, generated_keys):
            saved[index][ID_FIELD] = key

        logger.info("Records inserted", collection=self.collection, count=len(saved))

        if isinstance(data, Mapping):
            return saved[0]
        return saved

    async def update(self, record_id: Any, data: Record) -> Record:
        """Update a record by identifier and return its new state.

        When the store reports no change (identical values, or no record with
        that identifier) the submitted payload is returned instead.
        """
        patch = {k: v for k, v in data.items() if k != ID_FIELD}
        result = await self.store.update(Query(self.collection).get(record_id), patch)

        if not result.changes:
            logger.debug(
                "Update produced no changes",
                collection=self.collection,
                record_id=record_id,
                skipped=result.skipped,
            )
            return {**data, ID_FIELD: record_id}

        logger.info("Record updated", collection=self.collection, record_id=record_id)
        return result.changes[0].new_val or {**data, ID_FIELD: record_id}
