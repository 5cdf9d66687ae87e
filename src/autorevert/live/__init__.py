"""Live mode for visible, file-backed documents."""

from .controller import LiveModeController
from .host import (
    EventBusSource,
    HostEnvironment,
    LiveModeAdapter,
    NotificationSource,
    ResourceMetadata,
    SurfaceEnumerator,
    WorkspaceHost,
)
from .reconciler import ReconcileReport, Reconciler
from .sampler import VisibilitySampler
from .scheduler import (
    DEFAULT_DEBOUNCE_DELAY,
    DebounceScheduler,
    TimerFactory,
    TimerHandle,
    asyncio_timer_factory,
    qt_timer_factory,
)

__all__ = [
    "DEFAULT_DEBOUNCE_DELAY",
    "DebounceScheduler",
    "EventBusSource",
    "HostEnvironment",
    "LiveModeAdapter",
    "LiveModeController",
    "NotificationSource",
    "ReconcileReport",
    "Reconciler",
    "ResourceMetadata",
    "SurfaceEnumerator",
    "TimerFactory",
    "TimerHandle",
    "VisibilitySampler",
    "WorkspaceHost",
    "asyncio_timer_factory",
    "qt_timer_factory",
]
