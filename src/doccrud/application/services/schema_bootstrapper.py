"""Idempotent bootstrap of a collection and its secondary indexes."""

from collections.abc import Mapping
from dataclasses import dataclass, field

from doccrud.core.logging import get_logger
from doccrud.domain.entities.document_store import DocumentStore
from doccrud.domain.entities.index_spec import IndexSpec
from doccrud.domain.entities.query import r
from doccrud.domain.exceptions import SchemaBootstrapError
from doccrud.domain.services.index_normalizer import normalize_index

logger = get_logger(__name__)


@dataclass
class BootstrapResult:
    """What a bootstrap run had to create."""

    created_collection: bool = False
    created_indexes: list[str] = field(default_factory=list)


class SchemaBootstrapper:
    """Ensures a collection and its declared indexes exist.

    Check-then-create: existing collections and indexes are left untouched,
    so running it again creates nothing. Indexes are created one at a time.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def ensure(
        self, collection: str, indexes: Mapping[str, IndexSpec] | None = None
    ) -> BootstrapResult:
        """Create the collection and any missing index.

        Raises:
            SchemaBootstrapError: If listing or creating anything fails.
        """
        result = BootstrapResult()
        result.created_collection = await self._ensure_collection(collection)
        result.created_indexes = await self._ensure_indexes(collection, indexes or {})

        logger.info(
            "Collection bootstrap complete",
            collection=collection,
            created_collection=result.created_collection,
            created_indexes=result.created_indexes,
        )
        return result

    async def _ensure_collection(self, collection: str) -> bool:
        try:
            existing = await self.store.list_collections()
            if collection in existing:
                return False
            await self.store.create_collection(collection)
        except Exception as e:
            raise SchemaBootstrapError(
                f"Could not ensure collection {collection!r}: {e}", collection=collection
            ) from e

        logger.info("Collection created", collection=collection)
        return True

    async def _ensure_indexes(
        self, collection: str, indexes: Mapping[str, IndexSpec]
    ) -> list[str]:
        if not indexes:
            return []

        try:
            existing = set(await self.store.list_indexes(collection))
        except Exception as e:
            raise SchemaBootstrapError(
                f"Could not list indexes of {collection!r}: {e}", collection=collection
            ) from e

        created = []
        for name, spec in indexes.items():
            if name in existing:
                logger.debug("Index already exists", collection=collection, index=name)
                continue

            try:
                args = normalize_index(r, name, spec)
                await self.store.create_index(collection, name, args)
            except Exception as e:
                raise SchemaBootstrapError(
                    f"Could not create index {name!r} on {collection!r}: {e}",
                    collection=collection,
                    index=name,
                ) from e

            created.append(name)

        return created
