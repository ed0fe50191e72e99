"""Domain entities: queries, index specifications, configuration and contexts."""

from doccrud.domain.entities.collection_config import CollectionConfig, extract_collection_name
from doccrud.domain.entities.document_store import (
    Change,
    DocumentStore,
    InsertResult,
    Record,
    WriteResult,
)
from doccrud.domain.entities.index_spec import (
    ComputedIndex,
    DottedPathIndex,
    FieldListIndex,
    IndexSpec,
    NativeIndexArgs,
    OptionsIndex,
    parse_index_spec,
)
from doccrud.domain.entities.operation_context import HookResult, OperationContext
from doccrud.domain.entities.query import (
    BoolOp,
    Comparison,
    Compound,
    Expr,
    Field,
    Literal,
    Not,
    Ordering,
    Query,
    QueryLanguage,
    asc,
    desc,
    r,
)

__all__ = [
    "BoolOp",
    "Change",
    "CollectionConfig",
    "Comparison",
    "Compound",
    "ComputedIndex",
    "DocumentStore",
    "DottedPathIndex",
    "Expr",
    "Field",
    "FieldListIndex",
    "HookResult",
    "IndexSpec",
    "InsertResult",
    "Literal",
    "NativeIndexArgs",
    "Not",
    "OperationContext",
    "OptionsIndex",
    "Ordering",
    "Query",
    "QueryLanguage",
    "Record",
    "WriteResult",
    "asc",
    "desc",
    "extract_collection_name",
    "parse_index_spec",
    "r",
]
