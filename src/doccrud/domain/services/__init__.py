"""Domain services.

Pure logic with no dependency on a concrete store or dispatcher.
"""

from doccrud.domain.services.index_normalizer import normalize_index
from doccrud.domain.services.query_builder import QueryParams, build_query, parse_query_params
from doccrud.domain.services.validation_gate import ID_FIELD, ValidationGate, has_identifier

__all__ = [
    "ID_FIELD",
    "QueryParams",
    "ValidationGate",
    "build_query",
    "has_identifier",
    "normalize_index",
    "parse_query_params",
]
