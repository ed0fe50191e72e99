"""Abstract, composable queries against a single collection.

A query is plain data: a collection name, an ordered tuple of narrowing
steps and an optional projection. Stores compile it to their native form.

Field accessors overload Python operators the same way SQLAlchemy columns
do, so predicates read naturally::

    row = Field()
    Query("User").filter((row("age") >= 18) & (row("role") == "admin"))
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Union

from doccrud.domain.exceptions import InvalidQueryError

# Operator names accepted in filter objects, e.g. {"age": {"gte": 18}}
OPERATORS = frozenset({"eq", "ne", "gt", "gte", "lt", "lte", "in"})


class Expr:
    """Base class of query-language expressions."""

    __hash__ = object.__hash__

    def _compare(self, op: str, other: Any) -> "Comparison":
        return Comparison(op, self, as_expr(other))

    def __eq__(self, other: Any) -> "Comparison":  # type: ignore[override]
        return self._compare("eq", other)

    def __ne__(self, other: Any) -> "Comparison":  # type: ignore[override]
        return self._compare("ne", other)

    def __lt__(self, other: Any) -> "Comparison":
        return self._compare("lt", other)

    def __le__(self, other: Any) -> "Comparison":
        return self._compare("lte", other)

    def __gt__(self, other: Any) -> "Comparison":
        return self._compare("gt", other)

    def __ge__(self, other: Any) -> "Comparison":
        return self._compare("gte", other)

    def __and__(self, other: "Expr") -> "BoolOp":
        return BoolOp("and", (self, as_expr(other)))

    def __or__(self, other: "Expr") -> "BoolOp":
        return BoolOp("or", (self, as_expr(other)))

    def __invert__(self) -> "Not":
        return Not(self)

    def is_in(self, values: Any) -> "Comparison":
        """Membership test against a sequence of values."""
        if isinstance(values, (str, bytes)) or not hasattr(values, "__iter__"):
            raise InvalidQueryError(f"'in' expects a sequence of values, got {values!r}")
        return Comparison("in", self, Literal(tuple(values)))

    def asc(self) -> "Ordering":
        return Ordering(self, descending=False)

    def desc(self) -> "Ordering":
        return Ordering(self, descending=True)


@dataclass(frozen=True, eq=False)
class Field(Expr):
    """Accessor for a (possibly nested) document field.

    ``Field()`` is the whole document; calling it descends one level.
    """

    path: tuple[str, ...] = ()

    def __call__(self, name: str) -> "Field":
        return Field(self.path + (name,))

    def __getitem__(self, name: str) -> "Field":
        return self(name)

    @classmethod
    def from_dotted(cls, dotted: str) -> "Field":
        return cls(tuple(dotted.split(".")))

    @property
    def dotted(self) -> str:
        return ".".join(self.path)


@dataclass(frozen=True, eq=False)
class Literal(Expr):
    value: Any


@dataclass(frozen=True, eq=False)
class Comparison(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True, eq=False)
class BoolOp(Expr):
    op: str  # "and" | "or"
    operands: tuple[Expr, ...]


@dataclass(frozen=True, eq=False)
class Not(Expr):
    operand: Expr


@dataclass(frozen=True, eq=False)
class Compound(Expr):
    """Ordered tuple of expressions, used for compound indexes."""

    items: tuple[Expr, ...]


@dataclass(frozen=True, eq=False)
class Ordering:
    expr: Expr
    descending: bool = False


def as_expr(value: Any) -> Expr:
    return value if isinstance(value, Expr) else Literal(value)


def asc(key: Union[str, Expr]) -> Ordering:
    return Ordering(Field.from_dotted(key) if isinstance(key, str) else key)


def desc(key: Union[str, Expr]) -> Ordering:
    return Ordering(Field.from_dotted(key) if isinstance(key, str) else key, descending=True)


class QueryLanguage:
    """Root object handed to computed index functions.

    Mirrors the handful of helpers a computed index or predicate needs:
    ``r.row("a")("b")``, ``r.asc("a")``, ``r.expr(5)``.
    """

    row = Field()
    asc = staticmethod(asc)
    desc = staticmethod(desc)

    @staticmethod
    def expr(value: Any) -> Expr:
        return as_expr(value)


r = QueryLanguage()


def _is_operator_object(value: Any) -> bool:
    return isinstance(value, Mapping) and bool(value) and all(k in OPERATORS for k in value)


def _operator_predicates(field: Field, operators: Mapping[str, Any]) -> list[Expr]:
    predicates: list[Expr] = []
    for op, operand in operators.items():
        if op == "in":
            predicates.append(field.is_in(operand))
        else:
            predicates.append(Comparison(op, field, as_expr(operand)))
    return predicates


def match_object(obj: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> Expr:
    """Convert a filter object into a predicate.

    Plain values match by equality, nested mappings descend into nested
    fields, and mappings made only of operator names apply those operators.
    """
    predicates: list[Expr] = []
    for key, value in obj.items():
        field = Field(prefix + tuple(str(key).split(".")))
        if _is_operator_object(value):
            predicates.extend(_operator_predicates(field, value))
        elif isinstance(value, Mapping) and value:
            predicates.append(match_object(value, field.path))
        else:
            predicates.append(Comparison("eq", field, Literal(value)))

    if not predicates:
        raise InvalidQueryError("Filter object must contain at least one field")
    if len(predicates) == 1:
        return predicates[0]
    return BoolOp("and", tuple(predicates))


def to_predicate(filters: Any) -> Expr:
    """Normalize a filter object, expression or callable into an expression."""
    if isinstance(filters, Expr):
        return filters
    if isinstance(filters, Mapping):
        return match_object(filters)
    if callable(filters):
        predicate = filters(Field())
        if not isinstance(predicate, Expr):
            raise InvalidQueryError(
                f"Filter function must return a query expression, got {type(predicate).__name__}"
            )
        return predicate
    raise InvalidQueryError(f"Unsupported filter of type {type(filters).__name__}")


def to_orderings(key: Any) -> tuple[Ordering, ...]:
    if isinstance(key, Ordering):
        return (key,)
    if isinstance(key, str):
        return (asc(key),)
    if isinstance(key, Expr):
        return (Ordering(key),)
    if isinstance(key, (list, tuple)) and key:
        return tuple(o for item in key for o in to_orderings(item))
    raise InvalidQueryError(f"Unsupported order key {key!r}")


@dataclass(frozen=True, eq=False)
class FilterStep:
    predicate: Expr


@dataclass(frozen=True, eq=False)
class OrderStep:
    orderings: tuple[Ordering, ...]


@dataclass(frozen=True)
class SkipStep:
    count: int


@dataclass(frozen=True)
class LimitStep:
    count: int


QueryStep = Union[FilterStep, OrderStep, SkipStep, LimitStep]


@dataclass(frozen=True, eq=False)
class Query:
    """Immutable query against one collection.

    Every narrowing method returns a new query; steps are kept in the order
    they were applied and stores must honor that order.
    """

    collection: str
    steps: tuple[QueryStep, ...] = ()
    key: Any = None
    fields: tuple[str, ...] | None = None

    @property
    def is_keyed(self) -> bool:
        return self.key is not None

    def _narrow(self, step: QueryStep) -> "Query":
        if self.is_keyed:
            raise InvalidQueryError("A key lookup cannot be narrowed any further")
        return replace(self, steps=self.steps + (step,))

    def get(self, key: Any) -> "Query":
        if key is None:
            raise InvalidQueryError("Key lookup requires a key")
        return Query(self.collection, key=key)

    def filter(self, predicate: Union[Expr, Mapping[str, Any], Callable[[Field], Expr]]) -> "Query":
        return self._narrow(FilterStep(to_predicate(predicate)))

    def order_by(self, *keys: Any) -> "Query":
        if not keys:
            raise InvalidQueryError("order_by requires at least one key")
        return self._narrow(OrderStep(to_orderings(list(keys))))

    def skip(self, count: int) -> "Query":
        if count < 0:
            raise InvalidQueryError(f"skip must be >= 0, got {count}")
        return self._narrow(SkipStep(count))

    def limit(self, count: int) -> "Query":
        if count < 1:
            raise InvalidQueryError(f"limit must be > 0, got {count}")
        return self._narrow(LimitStep(count))

    def pluck(self, *fields: str) -> "Query":
        """Project every result onto the named top-level fields."""
        if self.is_keyed:
            raise InvalidQueryError("A key lookup cannot be projected")
        return replace(self, fields=tuple(fields))
