"""Single-threaded event bus connecting the host grid and the grouping engine.

Handlers run synchronously, in registration order, on the dispatching
thread. Event types use the ``namespace:event-name`` pattern.
"""

from __future__ import annotations

import inspect
import re

from collections.abc import Callable
from typing import Any

from .log import debug, log_handler_error, warn
from .models import validate_event_type


HandlerFunc = Callable[..., None]

# --- Host events consumed by the grouping coordinator ---
BEFORE_SOURCE_SET = "grid:before-source-set"
BEFORE_COLUMNS_SET = "grid:before-columns-set"
BEFORE_FILTER_TRIMMED = "grid:before-filter-trimmed"
AFTER_SORTING_APPLY = "grid:after-sorting-apply"
BEFORE_CELL_FOCUS = "grid:before-cell-focus"
ROW_ORDER_CHANGED = "grid:row-order-changed"
GROUP_EXPAND_CLICK = "grid:group-expand-click"
COLUMNS_REFRESHED = "grid:columns-refreshed"

# --- Events published by the grouping coordinator ---
TRIMMED_UPDATED = "grouping:trimmed-updated"
DEPTH_CHANGED = "grouping:depth-changed"


class EventBus:
    """Registry and dispatcher for event handlers.

    Handlers may accept ``(data)`` or ``(data, event_type)``. A handler
    that raises is logged and does not stop the remaining handlers.
    """

    def __init__(self) -> None:
        # {event_type: [handler, ...]}
        self._handlers: dict[str, list[HandlerFunc]] = {}

    def register(self, event_type: str, handler: HandlerFunc) -> bool:
        """Register an event handler.

        Parameters
        ----------
        event_type : str
            The event type (namespace:event-name, namespace:* or *).
        handler : HandlerFunc
            The callback function.

        Returns
        -------
        bool
            True if registered successfully, False otherwise.
        """
        if not (validate_event_type(event_type) or re.match(r"^[a-z][a-z0-9]*:\*$", event_type)):
            warn(
                f"Invalid event type '{event_type}'. "
                "Must match 'namespace:event-name' pattern or '*'."
            )
            return False

        self._handlers.setdefault(event_type, []).append(handler)
        debug(f"Registered handler for '{event_type}'")
        return True

    def unregister(self, event_type: str | None = None, handler: HandlerFunc | None = None) -> bool:
        """Unregister event handler(s).

        Parameters
        ----------
        event_type : str or None, optional
            The event type. None removes ``handler`` from every event type,
            or everything when ``handler`` is also None.
        handler : HandlerFunc or None, optional
            Specific handler to remove (None to remove all for event_type).

        Returns
        -------
        bool
            True if any handlers were removed, False otherwise.
        """
        if event_type is None:
            if handler is None:
                removed = bool(self._handlers)
                self._handlers.clear()
                return removed
            removed = [self.unregister(evt, handler) for evt in list(self._handlers)]
            return any(removed)

        if event_type not in self._handlers:
            return False

        if handler is None:
            del self._handlers[event_type]
            debug(f"Unregistered all handlers for '{event_type}'")
            return True

        try:
            self._handlers[event_type].remove(handler)
        except ValueError:
            return False
        if not self._handlers[event_type]:
            del self._handlers[event_type]
        return True

    def _collect_handlers(self, event_type: str) -> list[HandlerFunc]:
        handlers = list(self._handlers.get(event_type, []))

        namespace_match = re.match(r"^([a-z][a-z0-9]*):", event_type)
        if namespace_match:
            handlers.extend(self._handlers.get(f"{namespace_match.group(1)}:*", []))

        handlers.extend(self._handlers.get("*", []))
        return handlers

    @staticmethod
    def _invoke_handler(handler: HandlerFunc, data: Any, event_type: str) -> bool:
        try:
            sig = inspect.signature(handler)
            num_params = len(
                [p for p in sig.parameters.values() if p.default is inspect.Parameter.empty]
            )
            if num_params >= 2:
                handler(data, event_type)
            else:
                handler(data)
            return True
        except Exception as exc:  # pylint: disable=broad-except
            log_handler_error(event_type, exc)
            return False

    def dispatch(self, event_type: str, data: Any = None) -> bool:
        """Dispatch an event to registered handlers.

        Parameters
        ----------
        event_type : str
            The event type.
        data : Any
            The event payload, passed to handlers as-is so they can mutate
            it (e.g. call ``prevent_default()``).

        Returns
        -------
        bool
            True if any handler ran successfully, False otherwise.
        """
        handlers_called = False
        for handler in self._collect_handlers(event_type):
            if self._invoke_handler(handler, data, event_type):
                handlers_called = True
        return handlers_called

    def has_handlers(self, event_type: str | None = None) -> bool:
        """Check whether any handler (or any for ``event_type``) is registered."""
        if event_type is None:
            return bool(self._handlers)
        return bool(self._collect_handlers(event_type))

    def clear(self) -> None:
        """Remove every handler. Primarily for testing."""
        self._handlers.clear()
        debug("Cleared all event handlers")


class _BusHolder:
    instance: EventBus | None = None


def get_bus() -> EventBus:
    """Get the process-wide default event bus."""
    if _BusHolder.instance is None:
        _BusHolder.instance = EventBus()
    return _BusHolder.instance
