"""Map index specifications to store-native index arguments."""

from doccrud.domain.entities.index_spec import (
    ComputedIndex,
    DottedPathIndex,
    FieldListIndex,
    IndexSpec,
    NativeIndexArgs,
    OptionsIndex,
)
from doccrud.domain.entities.query import Compound, Expr, Field, QueryLanguage
from doccrud.domain.exceptions import ConfigurationError


def normalize_index(r: QueryLanguage, name: str, spec: IndexSpec) -> NativeIndexArgs:
    """Turn one classified index specification into native index arguments.

    Args:
        r: Query-language root, handed to computed index functions.
        name: Index name, used in error messages.
        spec: The classified specification.

    Raises:
        ConfigurationError: If a computed index does not return an
            expression, or the specification is of an unknown variant.
    """
    if isinstance(spec, DottedPathIndex):
        accessor: Field = r.row
        for segment in spec.path.split("."):
            accessor = accessor(segment)
        return NativeIndexArgs(expression=accessor)

    if isinstance(spec, FieldListIndex):
        return NativeIndexArgs(expression=Compound(tuple(r.row(f) for f in spec.fields)))

    if isinstance(spec, OptionsIndex):
        return NativeIndexArgs(options=dict(spec.options))

    if isinstance(spec, ComputedIndex):
        expression = spec.function(r)
        if not isinstance(expression, Expr):
            raise ConfigurationError(
                f"Index {name!r}: computed index must return a query expression, "
                f"got {type(expression).__name__}"
            )
        return NativeIndexArgs(expression=expression)

    raise ConfigurationError(f"Index {name!r}: unrecognized specification {spec!r}")
