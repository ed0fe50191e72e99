"""Dispatch system: named operations plus before/after hooks.

Example usage:
    from doccrud.core.dispatch import Dispatcher, HookDecorator

    dispatcher = Dispatcher()
    hooks = HookDecorator(dispatcher)

    @hooks.after("entity.User.save")
    async def on_user_saved(name, data):
        await notify(data)
"""

from doccrud.core.dispatch.dispatch_events import (
    CRUD_OPERATIONS,
    CrudOperation,
    DispatchPhase,
    qualify,
)
from doccrud.core.dispatch.dispatcher import Dispatcher, RegisteredHook
from doccrud.core.dispatch.hook_decorator import HookDecorator

__all__ = [
    "CRUD_OPERATIONS",
    "CrudOperation",
    "DispatchPhase",
    "Dispatcher",
    "HookDecorator",
    "RegisteredHook",
    "qualify",
]
