"""Collaborator contracts consumed by the live-mode core, plus the editor-backed host."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Hashable, Protocol, Sequence, runtime_checkable

from ..editor.windows import EditorPane, WindowManager
from ..editor.workspace import DocumentTab
from ..events import Event, EventBus, TabListChanged, TabShown, WindowLayoutChanged

__all__ = [
    "CancelHandle",
    "EventBusSource",
    "HostEnvironment",
    "LiveModeAdapter",
    "NotificationSource",
    "ResourceMetadata",
    "SurfaceEnumerator",
    "WorkspaceHost",
]

Resource = Hashable
NotifyCallback = Callable[..., None]


@runtime_checkable
class SurfaceEnumerator(Protocol):
    """Lists what is on screen."""

    def list_visible_surfaces(self) -> Sequence[Any]:  # pragma: no cover - protocol
        ...

    def surface_resource(self, surface: Any) -> Resource | None:  # pragma: no cover - protocol
        ...


@runtime_checkable
class ResourceMetadata(Protocol):
    def backing_path(self, resource: Resource) -> Path | None:  # pragma: no cover - protocol
        ...

    def is_live(self, resource: Resource) -> bool:  # pragma: no cover - protocol
        ...


@runtime_checkable
class LiveModeAdapter(Protocol):
    """Toggles live mode; idempotent, raises for a resource the host dropped."""

    def set_live_mode(self, resource: Resource, enabled: bool) -> None:  # pragma: no cover - protocol
        ...


class CancelHandle(Protocol):
    def cancel(self) -> None:  # pragma: no cover - protocol
        ...


class NotificationSource(Protocol):
    """One "something may have changed" stream."""

    def subscribe(self, callback: NotifyCallback) -> CancelHandle:  # pragma: no cover - protocol
        ...


class HostEnvironment(SurfaceEnumerator, ResourceMetadata, LiveModeAdapter, Protocol):
    def notification_sources(self) -> Sequence[NotificationSource]:  # pragma: no cover - protocol
        ...


@dataclass(slots=True, frozen=True)
class EventBusSource:
    """Adapts one event type on an :class:`EventBus` to a notification stream."""

    bus: EventBus
    event_type: type[Event]

    def subscribe(self, callback: NotifyCallback) -> CancelHandle:
        return self.bus.subscribe(self.event_type, callback)


class WorkspaceHost:
    """Host environment backed by the headless editor windows and workspace."""

    def __init__(self, windows: WindowManager, event_bus: EventBus) -> None:
        self._windows = windows
        self._event_bus = event_bus
        self._sources = (
            EventBusSource(event_bus, TabShown),
            EventBusSource(event_bus, WindowLayoutChanged),
            EventBusSource(event_bus, TabListChanged),
        )

    @property
    def windows(self) -> WindowManager:
        return self._windows

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    def list_visible_surfaces(self) -> Sequence[EditorPane]:
        return self._windows.displayed_panes()

    def surface_resource(self, surface: EditorPane) -> DocumentTab | None:
        return surface.tab

    def backing_path(self, resource: DocumentTab) -> Path | None:
        return resource.path

    def is_live(self, resource: DocumentTab) -> bool:
        return resource.is_live

    def set_live_mode(self, resource: DocumentTab, enabled: bool) -> None:
        resource.set_live_mode(enabled)

    def notification_sources(self) -> Sequence[NotificationSource]:
        return self._sources
