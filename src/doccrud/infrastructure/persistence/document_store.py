"""SQLite document store.

Every collection is a physical table of JSON documents::

    CREATE TABLE "col_User" (id VARCHAR PRIMARY KEY, doc JSON NOT NULL)

Secondary indexes are expression indexes over ``json_extract`` so that
filters and orderings compiled by the expression compiler can use them.
"""

import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import JSON, Column, Index, MetaData, String, Table, delete, insert, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from doccrud.core.config import get_settings
from doccrud.core.logging import get_logger
from doccrud.domain.entities.document_store import (
    Change,
    DocumentStore,
    InsertResult,
    Record,
    WriteResult,
)
from doccrud.domain.entities.index_spec import NativeIndexArgs
from doccrud.domain.entities.query import Field, Query
from doccrud.domain.exceptions import PersistenceError
from doccrud.domain.services.validation_gate import ID_FIELD, has_identifier
from doccrud.infrastructure.persistence.expression_compiler import (
    compile_index_expressions,
    compile_select,
    project,
)

logger = get_logger(__name__)


def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``patch`` into a copy of ``base``, descending into nested mappings."""
    merged = dict(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class SQLiteDocumentStore(DocumentStore):
    """Document store driver on top of an async SQLAlchemy engine (aiosqlite).

    Attributes:
        engine: SQLAlchemy async engine bound to an SQLite database.
        table_prefix: Prefix of collection tables.
        index_prefix: Prefix of index names. SQLite index names are global,
            so physical names also embed the table name.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        table_prefix: str | None = None,
        index_prefix: str | None = None,
    ) -> None:
        settings = get_settings()
        self.engine = engine
        self.table_prefix = table_prefix or settings.collection_table_prefix
        self.index_prefix = index_prefix or settings.index_prefix
        self._metadata = MetaData()
        self._tables: dict[str, Table] = {}

    def generate_table_name(self, collection: str) -> str:
        return f"{self.table_prefix}{collection}"

    def generate_index_name(self, collection: str, name: str) -> str:
        return f"{self.index_prefix}{self.generate_table_name(collection)}_{name}"

    def _table(self, collection: str) -> Table:
        table = self._tables.get(collection)
        if table is None:
            table = Table(
                self.generate_table_name(collection),
                self._metadata,
                Column("id", String, primary_key=True),
                Column("doc", JSON, nullable=False),
            )
            self._tables[collection] = table
        return table

    @contextmanager
    def _store_errors(self, action: str, collection: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(
                "Document store operation failed",
                action=action,
                collection=collection,
                error=str(e),
            )
            raise PersistenceError(f"{action} failed for collection {collection!r}: {e}") from e

    # =========================================================================
    # Schema
    # =========================================================================

    async def list_collections(self) -> list[str]:
        with self._store_errors("list_collections", "*"):
            async with self.engine.connect() as conn:
                result = await conn.execute(
                    text("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
                )
                names = result.scalars().all()

        return [name[len(self.table_prefix):] for name in names if name.startswith(self.table_prefix)]

    async def create_collection(self, name: str) -> None:
        table = self._table(name)
        with self._store_errors("create_collection", name):
            async with self.engine.begin() as conn:
                await conn.run_sync(table.create)

        logger.info("Collection table created", collection=name, table_name=table.name)

    async def list_indexes(self, collection: str) -> list[str]:
        table_name = self.generate_table_name(collection)
        prefix = f"{self.index_prefix}{table_name}_"

        with self._store_errors("list_indexes", collection):
            async with self.engine.connect() as conn:
                result = await conn.execute(
                    text(
                        "SELECT name FROM sqlite_master "
                        "WHERE type = 'index' AND tbl_name = :table_name ORDER BY name"
                    ),
                    {"table_name": table_name},
                )
                names = result.scalars().all()

        return [name[len(prefix):] for name in names if name.startswith(prefix)]

    async def create_index(self, collection: str, name: str, args: NativeIndexArgs) -> None:
        table = self._table(collection)
        options = dict(args.options)
        expression = args.expression if args.expression is not None else Field((name,))

        if options.pop("multi", False):
            logger.warning(
                "Multi-value indexes are not supported by SQLite; indexing the whole value",
                collection=collection,
                index=name,
            )
        unique = bool(options.pop("unique", False))
        if options:
            logger.warning(
                "Ignoring unsupported index options",
                collection=collection,
                index=name,
                options=sorted(options),
            )

        index = Index(
            self.generate_index_name(collection, name),
            *compile_index_expressions(expression, table.c.doc),
            unique=unique,
        )
        try:
            with self._store_errors("create_index", collection):
                async with self.engine.begin() as conn:
                    await conn.run_sync(index.create)
        finally:
            # Keep the cached Table free of indexes so table.create() stays index-less
            table.indexes.discard(index)

        logger.info("Index created", collection=collection, index=name, unique=unique)

    # =========================================================================
    # Reads
    # =========================================================================

    async def run(self, query: Query) -> Record | list[Record] | None:
        table = self._table(query.collection)

        with self._store_errors("run", query.collection):
            async with self.engine.connect() as conn:
                result = await conn.execute(compile_select(query, table))
                rows = result.all()

        if query.is_keyed:
            return dict(rows[0].doc) if rows else None
        return [project(dict(row.doc), query.fields) for row in rows]

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, collection: str, records: Record | list[Record]) -> InsertResult:
        items = [records] if isinstance(records, Mapping) else list(records)
        rows = []
        generated_keys = []

        for record in items:
            if not isinstance(record, Mapping):
                raise PersistenceError(
                    f"Cannot insert {type(record).__name__} into {collection!r}: expected an object"
                )
            doc = dict(record)
            if not has_identifier(doc):
                doc[ID_FIELD] = uuid.uuid4().hex
                generated_keys.append(doc[ID_FIELD])
            rows.append({"id": str(doc[ID_FIELD]), "doc": doc})

        if not rows:
            return InsertResult()

        table = self._table(collection)
        with self._store_errors("insert", collection):
            async with self.engine.begin() as conn:
                await conn.execute(insert(table), rows)

        logger.debug("Documents inserted", collection=collection, inserted=len(rows))
        return InsertResult(inserted=len(rows), generated_keys=generated_keys)

    async def update(self, query: Query, patch: Record) -> WriteResult:
        table = self._table(query.collection)
        changes = {k: v for k, v in patch.items() if k != ID_FIELD}
        result = WriteResult()

        with self._store_errors("update", query.collection):
            async with self.engine.begin() as conn:
                rows = (await conn.execute(compile_select(query, table))).all()
                if query.is_keyed and not rows:
                    result.skipped = 1

                for row in rows:
                    old_val = dict(row.doc)
                    new_val = deep_merge(old_val, changes)
                    if new_val == old_val:
                        result.unchanged += 1
                        continue
                    await conn.execute(
                        update(table).where(table.c.id == row.id).values(doc=new_val)
                    )
                    result.replaced += 1
                    result.changes.append(Change(old_val=old_val, new_val=new_val))

        logger.debug(
            "Documents updated",
            collection=query.collection,
            replaced=result.replaced,
            unchanged=result.unchanged,
            skipped=result.skipped,
        )
        return result

    async def delete(self, query: Query, return_changes: bool = False) -> WriteResult:
        table = self._table(query.collection)
        result = WriteResult()

        with self._store_errors("delete", query.collection):
            async with self.engine.begin() as conn:
                rows = (await conn.execute(compile_select(query, table))).all()
                if rows:
                    await conn.execute(delete(table).where(table.c.id.in_([row.id for row in rows])))

        result.deleted = len(rows)
        if return_changes:
            result.changes = [Change(old_val=dict(row.doc), new_val=None) for row in rows]

        logger.debug("Documents deleted", collection=query.collection, deleted=result.deleted)
        return result
