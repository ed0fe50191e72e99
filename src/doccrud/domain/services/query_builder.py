"""Translate declarative query parameters into a composed query.

Parameters are applied strictly in this order: filters, order_by, skip,
limit, fields. Filtering has to happen before pagination, and pagination
before projection. A parameter that is absent applies no constraint.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from doccrud.domain.entities.query import Query
from doccrud.domain.exceptions import InvalidQueryError


class QueryParams(BaseModel):
    """Declarative description of a find/remove query."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True, populate_by_name=True)

    filters: Any = None
    order_by: Any = Field(default=None, alias="orderBy")
    skip: int | None = Field(default=None, ge=0)
    limit: int | None = Field(default=None, gt=0)
    fields: list[str] | None = None


def parse_query_params(params: QueryParams | Mapping[str, Any]) -> QueryParams:
    if isinstance(params, QueryParams):
        return params
    if not isinstance(params, Mapping):
        raise InvalidQueryError(
            f"Query parameters must be a mapping or an identifier, got {type(params).__name__}"
        )
    try:
        return QueryParams.model_validate(dict(params))
    except PydanticValidationError as e:
        raise InvalidQueryError(f"Invalid query parameters: {e}") from e


def build_query(
    collection: str, params: str | QueryParams | Mapping[str, Any] | None = None
) -> Query:
    """Build the query described by ``params`` against ``collection``.

    A bare string is an identifier and yields a direct key lookup; ``None``
    scans the whole collection. An empty ``fields`` list applies no
    projection.

    Raises:
        InvalidQueryError: If the parameters are malformed.
    """
    query = Query(collection)

    if isinstance(params, str):
        return query.get(params)
    if params is None:
        return query

    parsed = parse_query_params(params)

    if parsed.filters is not None and not (
        isinstance(parsed.filters, Mapping) and not parsed.filters
    ):
        query = query.filter(parsed.filters)

    if parsed.order_by is not None:
        query = query.order_by(parsed.order_by)

    if parsed.skip:
        query = query.skip(parsed.skip)

    if parsed.limit is not None:
        query = query.limit(parsed.limit)

    if parsed.fields:
        query = query.pluck(*parsed.fields)

    return query
