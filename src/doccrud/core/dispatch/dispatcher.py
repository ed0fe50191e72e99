"""Dispatcher - named operation routing with before/after hooks.

The Dispatcher is the message bus generated services plug into. It provides:
- Subscription of one handler per fully qualified operation name
- Dispatching a payload to that handler with an OperationContext
- Registration of before/after hooks with priority
- Explicit hook emission; dispatching never fires hooks on its own

Hooks are observers: their return values are ignored and their errors are
logged, never propagated into the operation that emitted them.
"""

import asyncio
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from doccrud.core.dispatch.dispatch_events import DispatchPhase, qualify
from doccrud.core.logging import get_logger
from doccrud.domain.entities.operation_context import HookResult, OperationContext
from doccrud.domain.exceptions import UnknownOperationError

logger = get_logger(__name__)

Handler = Callable[[OperationContext], Any]
HookCallback = Callable[[str, Any], Any]


@dataclass
class RegisteredHook:
    """Internal representation of a registered hook.

    Attributes:
        id: Unique identifier for this hook registration.
        phase: DispatchPhase.BEFORE or DispatchPhase.AFTER.
        name: Fully qualified operation name the hook observes.
        callback: Called with (name, data).
        priority: Execution priority (higher = earlier).
        stop_on_error: Whether an error in this hook ends the chain.
        registration_order: Order in which this hook was registered.
    """

    id: str
    phase: str
    name: str
    callback: HookCallback
    priority: int = 0
    stop_on_error: bool = False
    registration_order: int = 0


class Dispatcher:
    """Routes named operations to handlers and emits lifecycle hooks.

    Example:
        dispatcher = Dispatcher()
        dispatcher.subscribe_map(services.namespace, services.map)

        dispatcher.on_after("entity.User.save", audit_saved_user)

        user = await dispatcher.dispatch("entity.User.create", {"first_name": "Ada"})
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._hooks: dict[tuple[str, str], list[RegisteredHook]] = {}
        self._hook_map: dict[str, RegisteredHook] = {}  # hook_id -> hook
        self._registration_counter: int = 0

    # =========================================================================
    # Handlers
    # =========================================================================

    def subscribe(self, name: str, handler: Handler) -> None:
        """Subscribe the handler of an operation name, replacing any previous one."""
        if name in self._handlers:
            logger.warning("Replacing operation handler", operation=name)
        self._handlers[name] = handler
        logger.debug("Operation subscribed", operation=name)

    def unsubscribe(self, name: str) -> bool:
        """Remove the handler of an operation name.

        Returns:
            True if a handler was removed, False if none was subscribed.
        """
        if self._handlers.pop(name, None) is None:
            return False
        logger.debug("Operation unsubscribed", operation=name)
        return True

    def subscribe_map(self, namespace: str, operation_map: Mapping[str, Handler]) -> list[str]:
        """Subscribe every entry of an operation map under ``namespace``.

        Returns:
            The fully qualified names that were subscribed.
        """
        names = []
        for operation, handler in operation_map.items():
            name = qualify(namespace, operation)
            self.subscribe(name, handler)
            names.append(name)
        return names

    def has_handler(self, name: str) -> bool:
        return name in self._handlers

    async def dispatch(self, name: str, params: Any = None) -> Any:
        """Route ``params`` to the handler subscribed under ``name``.

        Raises:
            UnknownOperationError: If nothing is subscribed under ``name``.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownOperationError(name)

        context = OperationContext(
            name=name,
            params=params,
            dispatch=self.dispatch,
            emit_before=self.emit_before,
            emit_after=self.emit_after,
        )
        logger.debug("Dispatching operation", operation=name, request_id=context.request_id)

        result = handler(context)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    # =========================================================================
    # Hooks
    # =========================================================================

    def on_before(
        self,
        name: str,
        callback: HookCallback,
        priority: int = 0,
        stop_on_error: bool = False,
    ) -> str:
        """Register a hook fired by ``emit_before(name, ...)``.

        Returns:
            Unique hook_id string for later removal.
        """
        return self._register(DispatchPhase.BEFORE, name, callback, priority, stop_on_error)

    def on_after(
        self,
        name: str,
        callback: HookCallback,
        priority: int = 0,
        stop_on_error: bool = False,
    ) -> str:
        """Register a hook fired by ``emit_after(name, ...)``.

        Returns:
            Unique hook_id string for later removal.
        """
        return self._register(DispatchPhase.AFTER, name, callback, priority, stop_on_error)

    def _register(
        self,
        phase: str,
        name: str,
        callback: HookCallback,
        priority: int,
        stop_on_error: bool,
    ) -> str:
        hook_id = f"hook_{uuid.uuid4().hex[:12]}"

        # FIFO ordering within the same priority
        self._registration_counter += 1

        hook = RegisteredHook(
            id=hook_id,
            phase=phase,
            name=name,
            callback=callback,
            priority=priority,
            stop_on_error=stop_on_error,
            registration_order=self._registration_counter,
        )
        self._hooks.setdefault((phase, name), []).append(hook)
        self._hook_map[hook_id] = hook

        logger.debug(
            "Hook registered",
            hook_id=hook_id,
            phase=phase,
            operation=name,
            priority=priority,
        )
        return hook_id

    def unregister(self, hook_id: str) -> bool:
        """Remove a registered hook.

        Returns:
            True if the hook was removed, False if it was not found.
        """
        hook = self._hook_map.pop(hook_id, None)
        if hook is None:
            logger.warning("Hook not found for unregister", hook_id=hook_id)
            return False

        key = (hook.phase, hook.name)
        remaining = [h for h in self._hooks.get(key, []) if h.id != hook_id]
        if remaining:
            self._hooks[key] = remaining
        else:
            self._hooks.pop(key, None)

        logger.debug("Hook unregistered", hook_id=hook_id, operation=hook.name)
        return True

    def get_hook_by_id(self, hook_id: str) -> RegisteredHook | None:
        return self._hook_map.get(hook_id)

    def get_hooks_for(self, phase: str, name: str) -> list[RegisteredHook]:
        """Get the hooks of a phase and operation name, in execution order."""
        return sorted(
            self._hooks.get((phase, name), []),
            key=lambda h: (-h.priority, h.registration_order),
        )

    def clear(self) -> int:
        """Remove all registered hooks.

        Returns:
            Number of hooks removed.
        """
        count = len(self._hook_map)
        self._hooks.clear()
        self._hook_map.clear()
        logger.debug("Hooks cleared", count=count)
        return count

    async def emit_before(self, name: str, data: Any = None) -> HookResult:
        """Fire the before-hooks registered under ``name``."""
        return await self._emit(DispatchPhase.BEFORE, name, data)

    async def emit_after(self, name: str, data: Any = None) -> HookResult:
        """Fire the after-hooks registered under ``name``."""
        return await self._emit(DispatchPhase.AFTER, name, data)

    async def _emit(self, phase: str, name: str, data: Any) -> HookResult:
        hooks = self.get_hooks_for(phase, name)
        result = HookResult(success=True, hook_count=len(hooks))
        if not hooks:
            return result

        logger.debug("Emitting hooks", phase=phase, operation=name, hook_count=len(hooks))

        for hook in hooks:
            try:
                outcome = hook.callback(name, data)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as e:
                logger.error(
                    "Hook execution failed",
                    hook_id=hook.id,
                    phase=phase,
                    operation=name,
                    error=str(e),
                    stop_on_error=hook.stop_on_error,
                )
                result.errors.append(f"Hook {hook.id} failed: {e}")
                if hook.stop_on_error:
                    result.success = False
                    break

        return result
