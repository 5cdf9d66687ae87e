"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files::

    from helpers import FakeTimerFactory, StubHost, StubResource
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass(eq=False)
class FakeTimer:
    due: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimerFactory:
    """Manual timer wheel; tests move time forward with :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(due=self.now + delay, callback=callback)
        self.timers.append(timer)
        return timer

    def pending(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [timer for timer in self.pending() if timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda item: item.due)
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = target


@dataclass(eq=False)
class StubResource:
    id: str
    path: str | None = "/tmp/doc.txt"
    live: bool = True
    enabled: bool = False
    fail: bool = False


class StubSubscription:
    def __init__(self, source: "StubSource", callback: Callable[..., None]) -> None:
        self._source = source
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._source.callbacks.remove(self._callback)


class StubSource:
    def __init__(self, name: str) -> None:
        self.name = name
        self.callbacks: list[Callable[..., None]] = []

    def subscribe(self, callback: Callable[..., None]) -> StubSubscription:
        self.callbacks.append(callback)
        return StubSubscription(self, callback)

    def emit(self) -> None:
        for callback in list(self.callbacks):
            callback(None)


@dataclass
class StubHost:
    """Host whose surfaces are the resources themselves.

    ``shown`` lists what is on screen (duplicates allowed, ``None`` for an
    empty pane); ``calls`` records every adapter invocation.
    """

    shown: list[Any] = field(default_factory=list)
    calls: list[tuple[str, bool]] = field(default_factory=list)
    sources: tuple[StubSource, ...] = field(
        default_factory=lambda: (StubSource("shown"), StubSource("layout"), StubSource("buffers"))
    )

    def list_visible_surfaces(self) -> list[Any]:
        return list(self.shown)

    def surface_resource(self, surface: Any) -> Any:
        return surface

    def backing_path(self, resource: StubResource) -> str | None:
        return resource.path

    def is_live(self, resource: StubResource) -> bool:
        return resource.live

    def set_live_mode(self, resource: StubResource, enabled: bool) -> None:
        self.calls.append((resource.id, enabled))
        if not resource.live:
            raise RuntimeError(f"{resource.id} is dead")
        if resource.fail:
            raise RuntimeError(f"{resource.id} refused live mode")
        resource.enabled = enabled

    def notification_sources(self) -> tuple[StubSource, ...]:
        return self.sources

    def calls_for(self, resource: StubResource) -> list[bool]:
        return [enabled for resource_id, enabled in self.calls if resource_id == resource.id]
