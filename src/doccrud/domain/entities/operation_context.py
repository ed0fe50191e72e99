"""Operation context and hook results for the dispatch system.

Contains the data structures shared between the dispatcher and the
operations it routes to:
- OperationContext: what every operation handler receives
- HookResult: outcome of emitting a before/after notification
"""

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class HookResult:
    """Result of emitting a before/after notification.

    Attributes:
        success: Whether every hook ran without raising.
        hook_count: Number of hooks that matched the operation name.
        errors: Messages from hooks that raised.
    """

    success: bool = True
    hook_count: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class OperationContext:
    """Context passed to every operation handler.

    Attributes:
        name: Fully qualified operation name (e.g. ``entity.User.save``).
        params: The dispatched payload.
        dispatch: Routes a nested operation through the dispatcher.
        emit_before: Fires the before-hooks of an operation name.
        emit_after: Fires the after-hooks of an operation name.

    Example:
        async def save(context: OperationContext) -> dict:
            data = await context.dispatch("entity.User.validate", context.params)
            await context.emit_before("entity.User.save", data)
            ...
    """

    name: str
    params: Any
    dispatch: Callable[[str, Any], Awaitable[Any]]
    emit_before: Callable[[str, Any], Awaitable[HookResult]]
    emit_after: Callable[[str, Any], Awaitable[HookResult]]
    request_id: str = ""

    def __post_init__(self) -> None:
        if not self.request_id:
            self.request_id = f"op_{uuid.uuid4().hex[:12]}"
