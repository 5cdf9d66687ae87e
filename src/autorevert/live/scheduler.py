"""Debounced scheduling of reconciliation passes."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Callable, Protocol

__all__ = [
    "DEFAULT_DEBOUNCE_DELAY",
    "DebounceScheduler",
    "TimerFactory",
    "TimerHandle",
    "asyncio_timer_factory",
    "qt_timer_factory",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_DELAY = 0.1


class TimerHandle(Protocol):
    def cancel(self) -> None:  # pragma: no cover - protocol
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def asyncio_timer_factory(loop: asyncio.AbstractEventLoop | None = None) -> TimerFactory:
    """Return a timer factory backed by ``loop.call_later``.

    Without an explicit loop the running loop is looked up when a timer is
    armed, so the factory can be built before the loop starts.
    """

    def _schedule(delay: float, callback: Callable[[], None]) -> TimerHandle:
        active = loop if loop is not None else asyncio.get_running_loop()
        return active.call_later(delay, callback)

    return _schedule


class _QtTimerHandle:
    __slots__ = ("_owner", "_token")

    def __init__(self, owner: "_QtTimerSlot", token: int) -> None:
        self._owner = owner
        self._token = token

    def cancel(self) -> None:
        self._owner.stop(self._token)


class _QtTimerSlot:
    """One reusable single-shot ``QTimer``; re-arming replaces the callback."""

    def __init__(self, timer_cls: Any, parent: Any | None) -> None:
        self._timer = timer_cls(parent)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)
        self._callback: Callable[[], None] | None = None
        self._token = 0

    def arm(self, delay: float, callback: Callable[[], None]) -> _QtTimerHandle:
        self._token += 1
        self._callback = callback
        self._timer.start(max(0, int(round(delay * 1000))))
        return _QtTimerHandle(self, self._token)

    def stop(self, token: int) -> None:
        if token != self._token or self._callback is None:
            return
        self._callback = None
        self._timer.stop()

    def _on_timeout(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


def qt_timer_factory(parent: Any | None = None) -> TimerFactory:
    """Return a timer factory driving a single-shot ``QTimer``.

    The factory owns one timer and re-arms it on every call, which matches a
    scheduler that keeps at most one timer pending.
    """

    try:  # Local import to avoid mandatory PySide6 dependency at import time.
        from PySide6.QtCore import QTimer
    except ImportError as exc:  # pragma: no cover - depends on desktop stack
        raise RuntimeError("PySide6 must be installed to use Qt timers.") from exc

    return _QtTimerSlot(QTimer, parent).arm


class DebounceScheduler:
    """Coalesces bursts of change notifications into one delayed callback.

    Every :meth:`notify` cancels the pending timer and arms a new one, so a
    burst yields a single callback ``delay`` seconds after its last event.
    At most one timer is pending at any time.

    Without ``timer_factory`` the scheduler binds to the asyncio loop running
    at construction time and raises :class:`RuntimeError` when there is none.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        *,
        delay: float = DEFAULT_DEBOUNCE_DELAY,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        self._callback = callback
        self._delay = _validate_delay(delay)
        if timer_factory is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    "DebounceScheduler needs a timer_factory when no asyncio loop is running"
                ) from exc
            timer_factory = asyncio_timer_factory(loop)
        self._timer_factory = timer_factory
        self._pending: TimerHandle | None = None
        self._generation = 0
        self._fired = 0

    @property
    def delay(self) -> float:
        return self._delay

    @delay.setter
    def delay(self, value: float) -> None:
        self._delay = _validate_delay(value)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    @property
    def fired(self) -> int:
        """Number of callbacks that actually ran."""

        return self._fired

    def notify(self, *_event: Any) -> None:
        """Record that something may have changed; payloads are ignored."""

        self.cancel()
        self._generation += 1
        generation = self._generation
        self._pending = self._timer_factory(self._delay, lambda: self._fire(generation))

    def cancel(self) -> bool:
        handle = self._pending
        if handle is None:
            return False
        self._pending = None
        # A timer already queued by the host must not fire after cancellation
        self._generation += 1
        handle.cancel()
        return True

    def flush(self) -> bool:
        """Run the pending callback immediately; returns False when none was pending."""

        if not self.cancel():
            return False
        self._run()
        return True

    def _fire(self, generation: int) -> None:
        if generation != self._generation or self._pending is None:
            return
        self._pending = None
        self._run()

    def _run(self) -> None:
        self._fired += 1
        try:
            self._callback()
        except Exception:
            LOGGER.exception("Debounced callback failed")


def _validate_delay(value: float) -> float:
    delay = float(value)
    if not math.isfinite(delay) or delay < 0:
        raise ValueError(f"debounce delay must be a finite non-negative number, got {value!r}")
    return delay
