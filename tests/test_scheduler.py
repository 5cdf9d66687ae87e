"""Tests for the debounce scheduler."""

from __future__ import annotations

import asyncio
import logging

import pytest

from autorevert.live.scheduler import DebounceScheduler, asyncio_timer_factory


class _Counter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


def test_burst_of_notifications_yields_one_callback(fake_timers) -> None:
    counter = _Counter()
    scheduler = DebounceScheduler(counter, delay=0.1, timer_factory=fake_timers)

    for _ in range(3):
        scheduler.notify()
        fake_timers.advance(0.02)

    assert counter.calls == 0
    assert len(fake_timers.pending()) == 1

    fake_timers.advance(0.1)

    assert counter.calls == 1
    assert scheduler.pending is False
    assert fake_timers.pending() == []


def test_each_notification_restarts_the_delay(fake_timers) -> None:
    counter = _Counter()
    scheduler = DebounceScheduler(counter, delay=0.1, timer_factory=fake_timers)

    scheduler.notify()
    fake_timers.advance(0.09)
    scheduler.notify()
    fake_timers.advance(0.09)

    assert counter.calls == 0

    fake_timers.advance(0.02)

    assert counter.calls == 1


def test_separate_bursts_fire_separately(fake_timers) -> None:
    counter = _Counter()
    scheduler = DebounceScheduler(counter, delay=0.05, timer_factory=fake_timers)

    scheduler.notify("payload is ignored")
    fake_timers.advance(0.1)
    scheduler.notify()
    fake_timers.advance(0.1)

    assert counter.calls == 2
    assert scheduler.fired == 2


def test_cancel_drops_pending_callback(fake_timers) -> None:
    counter = _Counter()
    scheduler = DebounceScheduler(counter, timer_factory=fake_timers)

    scheduler.notify()
    assert scheduler.cancel() is True
    assert scheduler.cancel() is False
    fake_timers.advance(1.0)

    assert counter.calls == 0


def test_stale_timer_callback_is_ignored(fake_timers) -> None:
    counter = _Counter()
    scheduler = DebounceScheduler(counter, timer_factory=fake_timers)

    scheduler.notify()
    stale = fake_timers.timers[0]
    scheduler.cancel()
    stale.callback()  # host delivered a timeout that was already queued

    assert counter.calls == 0


def test_flush_runs_pending_callback_now(fake_timers) -> None:
    counter = _Counter()
    scheduler = DebounceScheduler(counter, timer_factory=fake_timers)

    assert scheduler.flush() is False
    scheduler.notify()
    assert scheduler.flush() is True
    fake_timers.advance(1.0)

    assert counter.calls == 1


def test_delay_must_be_non_negative(fake_timers) -> None:
    with pytest.raises(ValueError):
        DebounceScheduler(_Counter(), delay=-0.5, timer_factory=fake_timers)

    scheduler = DebounceScheduler(_Counter(), timer_factory=fake_timers)
    scheduler.delay = 0.25
    scheduler.notify()

    assert scheduler.delay == 0.25
    assert fake_timers.timers[-1].due == pytest.approx(0.25)
    with pytest.raises(ValueError):
        scheduler.delay = -1


@pytest.mark.parametrize("delay", [float("nan"), float("inf"), float("-inf")])
def test_delay_must_be_finite(fake_timers, delay: float) -> None:
    with pytest.raises(ValueError):
        DebounceScheduler(_Counter(), delay=delay, timer_factory=fake_timers)

    scheduler = DebounceScheduler(_Counter(), delay=0.1, timer_factory=fake_timers)
    with pytest.raises(ValueError):
        scheduler.delay = delay
    assert scheduler.delay == pytest.approx(0.1)


def test_callback_errors_are_logged_and_scheduler_keeps_working(fake_timers, caplog) -> None:
    outcomes: list[str] = []

    def flaky() -> None:
        outcomes.append("ran")
        if len(outcomes) == 1:
            raise RuntimeError("pass exploded")

    scheduler = DebounceScheduler(flaky, timer_factory=fake_timers)

    with caplog.at_level(logging.ERROR, logger="autorevert.live.scheduler"):
        scheduler.notify()
        fake_timers.advance(1.0)
    scheduler.notify()
    fake_timers.advance(1.0)

    assert outcomes == ["ran", "ran"]
    assert "Debounced callback failed" in caplog.text


@pytest.mark.asyncio
async def test_asyncio_timer_factory_coalesces_on_running_loop() -> None:
    counter = _Counter()
    scheduler = DebounceScheduler(counter, delay=0.02, timer_factory=asyncio_timer_factory())

    for _ in range(5):
        scheduler.notify()
        await asyncio.sleep(0)
    await asyncio.sleep(0.1)

    assert counter.calls == 1


def test_asyncio_timer_factory_with_explicit_loop() -> None:
    loop = asyncio.new_event_loop()
    try:
        counter = _Counter()
        scheduler = DebounceScheduler(counter, delay=0.01, timer_factory=asyncio_timer_factory(loop))
        scheduler.notify()
        scheduler.notify()
        loop.run_until_complete(asyncio.sleep(0.05))
    finally:
        loop.close()

    assert counter.calls == 1


def test_default_timer_factory_requires_running_loop() -> None:
    with pytest.raises(RuntimeError, match="timer_factory"):
        DebounceScheduler(_Counter())


@pytest.mark.asyncio
async def test_default_timer_factory_binds_running_loop() -> None:
    counter = _Counter()
    scheduler = DebounceScheduler(counter, delay=0.01)

    scheduler.notify()
    await asyncio.sleep(0.05)

    assert counter.calls == 1
