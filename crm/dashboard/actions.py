"""
``data-action`` event delegation.

Rendered fragments carry ``data-action="invite-lead" data-lead-id="7"`` on
their buttons. One dispatcher maps the action name to a handler, so a
re-render never needs to re-bind anything.
"""
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

logger = logging.getLogger(__name__)

ConfirmHook = Callable[[str], Union[bool, Awaitable[bool]]]


class UnknownActionError(KeyError):
    pass


class ActionPayloadError(ValueError):
    """The payload does not fit the handler's parameters."""


def as_bool(value: Any) -> bool:
    """Dataset values arrive as strings; ``"false"`` must not be truthy."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def as_amount(value: Any, field: str = "amount") -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ActionPayloadError(f"{field} must be a number, got {value!r}") from None


class ActionDispatcher:
    def __init__(self, confirm: Optional[ConfirmHook] = None):
        self.confirm = confirm
        self._handlers: Dict[str, Callable[..., Awaitable[Any]]] = {}
        self._confirmations: Dict[str, str] = {}

    def register(self, action: str, handler: Callable[..., Awaitable[Any]], confirm: Optional[str] = None) -> None:
        """Register ``handler`` for ``action``; ``confirm`` gates it behind the confirm hook."""
        self._handlers[action] = handler
        if confirm:
            self._confirmations[action] = confirm

    def action(self, name: str, confirm: Optional[str] = None):
        def decorator(handler):
            self.register(name, handler, confirm=confirm)
            return handler
        return decorator

    def has(self, action: str) -> bool:
        return action in self._handlers

    def requires_confirmation(self, action: str) -> bool:
        return action in self._confirmations

    async def _confirmed(self, action: str, hook: Optional[ConfirmHook]) -> bool:
        message = self._confirmations.get(action)
        if message is None:
            return True
        if hook is None:
            return False
        result = hook(message)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def dispatch(self, action: str, payload: Optional[Dict[str, Any]] = None,
                       confirm: Optional[ConfirmHook] = None) -> Any:
        handler = self._handlers.get(action)
        if handler is None:
            raise UnknownActionError(action)

        if not await self._confirmed(action, confirm or self.confirm):
            logger.info("Action '%s' cancelled at confirmation", action)
            return None

        payload = payload or {}
        try:
            inspect.signature(handler).bind(**payload)
        except TypeError as e:
            raise ActionPayloadError(f"{action}: {e}") from e

        logger.debug("Dispatching %s %s", action, payload)
        return await handler(**payload)

    async def handle_click(self, dataset: Dict[str, str], confirm: Optional[ConfirmHook] = None) -> Any:
        """Dispatch from an element dataset: ``action`` plus its other data-* values."""
        data = dict(dataset)
        action = data.pop("action", None)
        if not action:
            return None
        payload = {key.replace("-", "_"): value for key, value in data.items()}
        return await self.dispatch(action, payload, confirm=confirm)
