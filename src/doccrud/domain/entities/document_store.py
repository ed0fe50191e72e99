"""Abstract document store driver and its result types.

Generated services only ever talk to this interface; the SQLite
implementation lives in ``doccrud.infrastructure.persistence``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from doccrud.domain.entities.index_spec import NativeIndexArgs
from doccrud.domain.entities.query import Query

Record = dict[str, Any]


@dataclass
class Change:
    """Before/after images of one document touched by a write."""

    old_val: Record | None
    new_val: Record | None


@dataclass
class InsertResult:
    """Result of an insert.

    Attributes:
        inserted: Number of documents written.
        generated_keys: Keys generated for documents submitted without an
            identifier, in submission order.
    """

    inserted: int = 0
    generated_keys: list[str] = field(default_factory=list)


@dataclass
class WriteResult:
    """Result of an update or delete."""

    replaced: int = 0
    unchanged: int = 0
    skipped: int = 0
    deleted: int = 0
    changes: list[Change] = field(default_factory=list)


class DocumentStore(ABC):
    """Driver for a document-oriented data store."""

    @abstractmethod
    async def list_collections(self) -> list[str]:
        """Return the names of all existing collections."""

    @abstractmethod
    async def create_collection(self, name: str) -> None:
        """Create a collection. Fails if it already exists."""

    @abstractmethod
    async def list_indexes(self, collection: str) -> list[str]:
        """Return the names of the secondary indexes of a collection."""

    @abstractmethod
    async def create_index(self, collection: str, name: str, args: NativeIndexArgs) -> None:
        """Create a secondary index."""

    @abstractmethod
    async def run(self, query: Query) -> Record | list[Record] | None:
        """Execute a read query.

        Returns the record (or None) for a key lookup and a list otherwise.
        """

    @abstractmethod
    async def insert(self, collection: str, records: Record | list[Record]) -> InsertResult:
        """Insert one or many documents, generating missing identifiers."""

    @abstractmethod
    async def update(self, query: Query, patch: Record) -> WriteResult:
        """Merge ``patch`` into every matched document, reporting changes."""

    @abstractmethod
    async def delete(self, query: Query, return_changes: bool = False) -> WriteResult:
        """Delete every matched document."""
