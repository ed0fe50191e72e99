"""Decorator API for hook registration.

Enables registering observers with::

    hooks = HookDecorator(dispatcher)

    @hooks.after("entity.User.save")
    async def audit_user(name, data):
        ...
"""

from typing import Any, Callable, TypeVar

from doccrud.core.dispatch.dispatcher import Dispatcher

F = TypeVar("F", bound=Callable[..., Any])


class HookDecorator:
    """Provides decorator syntax on top of a Dispatcher."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def before(
        self, name: str, priority: int = 0, stop_on_error: bool = False
    ) -> Callable[[F], F]:
        """Register the decorated function as a before-hook of ``name``."""

        def decorator(func: F) -> F:
            hook_id = self._dispatcher.on_before(name, func, priority, stop_on_error)
            func._hook_id = hook_id  # type: ignore[attr-defined]
            return func

        return decorator

    def after(
        self, name: str, priority: int = 0, stop_on_error: bool = False
    ) -> Callable[[F], F]:
        """Register the decorated function as an after-hook of ``name``."""

        def decorator(func: F) -> F:
            hook_id = self._dispatcher.on_after(name, func, priority, stop_on_error)
            func._hook_id = hook_id  # type: ignore[attr-defined]
            return func

        return decorator
