"""Operation names and hook phases.

Operation names are part of the public contract of generated services:
each one is bound under ``f"{namespace}.{operation}"``.
"""


class DispatchPhase:
    """Phases at which hooks can observe an operation."""

    BEFORE = "before"
    AFTER = "after"


class CrudOperation:
    """Names of the operations every generated service exposes."""

    QUERY = "query"
    FIND = "find"
    FIND_ONE = "find_one"
    FIND_BY_ID = "find_by_id"
    CREATE = "create"
    UPDATE = "update"
    VALIDATE = "validate"
    SAVE = "save"
    REMOVE = "remove"


CRUD_OPERATIONS: tuple[str, ...] = (
    CrudOperation.QUERY,
    CrudOperation.FIND,
    CrudOperation.FIND_ONE,
    CrudOperation.FIND_BY_ID,
    CrudOperation.CREATE,
    CrudOperation.UPDATE,
    CrudOperation.VALIDATE,
    CrudOperation.SAVE,
    CrudOperation.REMOVE,
)


def qualify(namespace: str, operation: str) -> str:
    """Build the fully qualified name of an operation.

    >>> qualify("entity.User", CrudOperation.SAVE)
    'entity.User.save'
    """
    return f"{namespace}.{operation}"
