"""Event bus infrastructure for decoupled host/live-mode communication.

The headless editor model publishes the three visibility notification streams
(tab shown, window layout changed, tab list changed) on an :class:`EventBus`;
the live-mode controller subscribes to them without holding references to the
windows or the workspace.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Generic,
    TypeVar,
    TYPE_CHECKING,
)
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

# Type variable for event types
E = TypeVar("E", bound="Event")

# Handler type: a callable that takes an event and returns None
Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events in the system.

    Example::

        @dataclass(slots=True)
        class TabShown(Event):
            window_id: str
            pane_id: str
            tab_id: str
    """

    pass


# High-frequency event types that should not log each publish
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Visibility Events
# =============================================================================


@dataclass(slots=True)
class TabShown(Event):
    """Emitted when a pane starts displaying a (possibly different) tab.

    Attributes:
        window_id: The window owning the pane.
        pane_id: The pane that switched.
        tab_id: The tab now displayed, or None when the pane was emptied.
    """

    window_id: str
    pane_id: str
    tab_id: str | None = None


@dataclass(slots=True)
class WindowLayoutChanged(Event):
    """Emitted when panes are split or closed, or a window is opened, closed,
    minimised or restored.

    Attributes:
        window_id: The window whose layout changed.
        reason: Short machine-readable reason (``"split"``, ``"minimize"``...).
    """

    window_id: str
    reason: str = ""


@dataclass(slots=True)
class TabListChanged(Event):
    """Emitted when a tab is opened or closed in the workspace.

    Attributes:
        tab_id: The tab that was created or closed.
        action: ``"created"`` or ``"closed"``.
        tab_count: Number of open tabs after the change.
    """

    tab_id: str
    action: str
    tab_count: int


# Tab switches fire on every keystroke-driven navigation
_QUIET_EVENT_TYPES.add(TabShown)


# =============================================================================
# Infrastructure Events
# =============================================================================


@dataclass(slots=True)
class SettingsChanged(Event):
    """Emitted when application settings are modified.

    Attributes:
        settings: The updated settings object.
    """

    settings: Any


@dataclass(slots=True)
class LiveModeToggled(Event):
    """Emitted when the live-mode controller activates or deactivates.

    Attributes:
        active: Whether live mode is now active.
        monitored: Number of tabs with live mode enabled after the transition.
    """

    active: bool
    monitored: int = 0


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`.

    Cancelling removes exactly the registration that produced the handle.
    Cancelling twice is harmless.
    """

    __slots__ = ("_bus", "_event_type", "_handler_ref")

    def __init__(self, bus: "EventBus[Any]", event_type: type[Event], handler_ref: "_HandlerRef") -> None:
        self._bus: EventBus[Any] | None = bus
        self._event_type = event_type
        self._handler_ref = handler_ref

    @property
    def active(self) -> bool:
        return self._bus is not None

    @property
    def event_type(self) -> type[Event]:
        return self._event_type

    def cancel(self) -> None:
        bus = self._bus
        if bus is None:
            return
        self._bus = None
        bus._remove_ref(self._event_type, self._handler_ref)


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus for decoupled communication.

    Handlers are stored as weak references where possible (bound methods) to
    prevent memory leaks.

    Example::

        bus = EventBus()
        handle = bus.subscribe(TabShown, on_tab_shown)
        bus.publish(TabShown(window_id="w1", pane_id="p1", tab_id="t1"))
        handle.cancel()

    Thread Safety:
        This implementation is NOT thread-safe. All operations should be
        performed from the event loop thread.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Subscription:
        """Register a handler to receive events of the specified type.

        Subscribing the same handler multiple times results in multiple
        invocations when an event is published.

        Returns:
            A :class:`Subscription` whose ``cancel()`` removes this registration.
        """
        handler_ref = _HandlerRef.create(handler)
        self._handlers[event_type].append(handler_ref)
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )
        return Subscription(self, event_type, handler_ref)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove a previously registered handler.

        If the handler was registered multiple times, only the first
        occurrence is removed. Safe to call for unknown handlers.
        """
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return

        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Broadcast an event to all registered handlers.

        Handlers are invoked synchronously in registration order. If a
        handler raises, the exception is logged and remaining handlers
        continue to be invoked.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        is_quiet = event_type in _QUIET_EVENT_TYPES

        if not handlers:
            if not is_quiet:
                logger.debug("No handlers for event type %s", event_type.__name__)
            return

        if not is_quiet:
            logger.debug(
                "Publishing %s to %d handler(s)",
                event_type.__name__,
                len(handlers),
            )

        dead: list[_HandlerRef] = []

        # Handlers may cancel their own subscription while running
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue

            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead:
            self._remove_ref(event_type, handler_ref)

    def clear(self) -> None:
        """Remove all registered handlers."""
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the number of registered handlers.

        Args:
            event_type: If provided, return count for that event type only.
                       If None, return total count across all event types.
        """
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())

    def _remove_ref(self, event_type: type[Event], handler_ref: "_HandlerRef") -> None:
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for i, candidate in enumerate(handlers):
            if candidate is handler_ref:
                handlers.pop(i)
                return


class _HandlerRef:
    """Wrapper for handler references supporting both weak and strong refs.

    Bound methods use WeakMethod so subscriptions disappear with their owner;
    plain functions and lambdas are held strongly.
    """

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                # Some callables can't be weakly referenced
                pass

        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        """Return the handler callable, or None if it was garbage collected."""
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    """Get a human-readable name for a handler for logging purposes."""
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        cls_name = type(handler.__self__).__name__
        return f"{cls_name}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "Subscription",
    # Visibility events
    "TabShown",
    "WindowLayoutChanged",
    "TabListChanged",
    # Infrastructure events
    "SettingsChanged",
    "LiveModeToggled",
]
