"""Compile abstract queries to SQLAlchemy Core against a document table.

Documents live in a JSON ``doc`` column; field accesses become
``json_extract(doc, '$."a"."b"')``. Paths are rendered as literal SQL (not
bound parameters) so that query expressions are textually identical to
the expressions of the indexes built from them, which is what lets SQLite
use those indexes.
"""

import json
import operator
from typing import Any

from sqlalchemy import ColumnElement, Select, Table, and_, func, literal, literal_column, not_, or_, select

from doccrud.domain.entities.query import (
    BoolOp,
    Comparison,
    Compound,
    Expr,
    Field,
    FilterStep,
    LimitStep,
    Literal,
    Not,
    Ordering,
    OrderStep,
    Query,
    SkipStep,
)
from doccrud.domain.exceptions import InvalidQueryError

_COMPARATORS = {
    "eq": operator.eq,
    "ne": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


def json_path(path: tuple[str, ...]) -> str:
    """Render a field path as an SQLite JSON path.

    >>> json_path(("address", "city"))
    '$."address"."city"'
    """
    for segment in path:
        if '"' in segment:
            raise InvalidQueryError(f"Field names cannot contain double quotes: {segment!r}")
    return "$" + "".join(f'."{segment}"' for segment in path)


def field_accessor(doc: ColumnElement, path: tuple[str, ...]) -> ColumnElement:
    if not path:
        return doc
    path_sql = json_path(path).replace("'", "''")
    return func.json_extract(doc, literal_column(f"'{path_sql}'"))


def _bind(value: Any) -> ColumnElement:
    if isinstance(value, (dict, list, tuple)):
        # json_extract returns containers as minified JSON text
        return func.json(json.dumps(value))
    return literal(value)


def compile_expression(expr: Expr, doc: ColumnElement) -> ColumnElement:
    """Compile a query-language expression against the ``doc`` column."""
    if isinstance(expr, Field):
        return field_accessor(doc, expr.path)

    if isinstance(expr, Literal):
        return _bind(expr.value)

    if isinstance(expr, Comparison):
        left = compile_expression(expr.left, doc)

        if expr.op == "in":
            if not isinstance(expr.right, Literal):
                raise InvalidQueryError("'in' expects a literal sequence of values")
            return left.in_([_bind(v) for v in expr.right.value])

        if isinstance(expr.right, Literal) and expr.right.value is None:
            if expr.op == "eq":
                return left.is_(None)
            if expr.op == "ne":
                return left.is_not(None)
            raise InvalidQueryError(f"Cannot compare null with {expr.op!r}")

        comparator = _COMPARATORS.get(expr.op)
        if comparator is None:
            raise InvalidQueryError(f"Unknown comparison operator {expr.op!r}")
        return comparator(left, compile_expression(expr.right, doc))

    if isinstance(expr, BoolOp):
        operands = [compile_expression(operand, doc) for operand in expr.operands]
        return and_(*operands) if expr.op == "and" else or_(*operands)

    if isinstance(expr, Not):
        return not_(compile_expression(expr.operand, doc))

    if isinstance(expr, Compound):
        raise InvalidQueryError("Compound expressions can only be used as index definitions")

    raise InvalidQueryError(f"Unsupported expression {type(expr).__name__}")


def compile_index_expressions(expr: Expr, doc: ColumnElement) -> list[ColumnElement]:
    """Compile an index expression into the column expressions of an Index."""
    if isinstance(expr, Compound):
        return [compile_expression(item, doc) for item in expr.items]
    return [compile_expression(expr, doc)]


def compile_ordering(ordering: Ordering, doc: ColumnElement) -> ColumnElement:
    compiled = compile_expression(ordering.expr, doc)
    return compiled.desc() if ordering.descending else compiled.asc()


def compile_select(query: Query, table: Table) -> Select:
    """Compile the narrowing steps of a query into a SELECT of (id, doc).

    Steps are honored in the order they were applied: a filter, order or
    skip that follows pagination wraps the paginated window in a subquery
    instead of being hoisted before it. Projection is left to the caller.
    """
    if query.is_keyed:
        return select(table.c.id, table.c.doc).where(table.c.id == str(query.key))

    source: Any = table
    stmt = select(table.c.id, table.c.doc)
    orderings: tuple[Ordering, ...] = ()
    has_offset = has_limit = False

    for step in query.steps:
        paginated = has_offset or has_limit
        if (isinstance(step, (FilterStep, OrderStep, SkipStep)) and paginated) or (
            isinstance(step, LimitStep) and has_limit
        ):
            source = stmt.subquery()
            stmt = select(source.c.id, source.c.doc)
            if orderings:
                stmt = stmt.order_by(*(compile_ordering(o, source.c.doc) for o in orderings))
            has_offset = has_limit = False

        if isinstance(step, FilterStep):
            stmt = stmt.where(compile_expression(step.predicate, source.c.doc))
        elif isinstance(step, OrderStep):
            orderings = step.orderings
            stmt = stmt.order_by(None).order_by(
                *(compile_ordering(o, source.c.doc) for o in orderings)
            )
        elif isinstance(step, SkipStep):
            stmt = stmt.offset(step.count)
            has_offset = True
        elif isinstance(step, LimitStep):
            stmt = stmt.limit(step.count)
            has_limit = True

    return stmt


def project(document: dict[str, Any], fields: tuple[str, ...] | None) -> dict[str, Any]:
    """Keep only the named top-level fields of a document."""
    if fields is None:
        return document
    return {name: document[name] for name in fields if name in document}
