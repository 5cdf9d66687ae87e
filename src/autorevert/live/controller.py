"""Activation lifecycle for live mode on visible documents."""

from __future__ import annotations

import logging
from typing import Any, Hashable

from ..events import EventBus, LiveModeToggled, SettingsChanged, Subscription
from .host import CancelHandle, HostEnvironment
from .reconciler import ReconcileReport, Reconciler
from .sampler import VisibilitySampler
from .scheduler import DEFAULT_DEBOUNCE_DELAY, DebounceScheduler, TimerFactory

__all__ = ["LiveModeController"]

LOGGER = logging.getLogger(__name__)


class LiveModeController:
    """Switches live mode between ``Inactive`` and ``Active``.

    Activation builds a fresh :class:`Reconciler`, subscribes the debounce
    scheduler to every host notification stream and runs one immediate pass.
    Deactivation drops the subscriptions, cancels any pending pass and turns
    live mode off on everything the reconciler enabled.
    """

    def __init__(
        self,
        host: HostEnvironment,
        *,
        delay: float = DEFAULT_DEBOUNCE_DELAY,
        timer_factory: TimerFactory | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._host = host
        self._event_bus = event_bus
        self._sampler = VisibilitySampler(host, host)
        self._scheduler = DebounceScheduler(self._run_pass, delay=delay, timer_factory=timer_factory)
        self._reconciler: Reconciler | None = None
        self._subscriptions: list[CancelHandle] = []
        self._settings_subscription: Subscription | None = None
        self._last_report: ReconcileReport | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def active(self) -> bool:
        return self._reconciler is not None

    @property
    def scheduler(self) -> DebounceScheduler:
        return self._scheduler

    @property
    def sampler(self) -> VisibilitySampler:
        return self._sampler

    @property
    def reconciler(self) -> Reconciler | None:
        return self._reconciler

    @property
    def last_report(self) -> ReconcileReport | None:
        return self._last_report

    def monitored(self) -> frozenset[Hashable]:
        if self._reconciler is None:
            return frozenset()
        return self._reconciler.monitored()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def activate(self) -> ReconcileReport | None:
        """Enter ``Active``; returns the report of the initial pass."""

        if self._reconciler is not None:
            return None
        self._reconciler = Reconciler(
            self._sampler,
            self._host,
            self._host,
            cancel_pending=self._scheduler.cancel,
        )
        for source in self._host.notification_sources():
            self._subscriptions.append(source.subscribe(self._scheduler.notify))
        LOGGER.info(
            "Live mode activated (%d notification source(s), debounce=%.3fs)",
            len(self._subscriptions),
            self._scheduler.delay,
        )
        report = self._reconciler.reconcile()
        self._last_report = report
        self._publish(True)
        return report

    def deactivate(self) -> tuple[Hashable, ...]:
        """Enter ``Inactive``; returns the resources that were being monitored."""

        reconciler = self._reconciler
        if reconciler is None:
            return ()
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.cancel()
        self._scheduler.cancel()
        self._reconciler = None
        released = reconciler.release()
        LOGGER.info("Live mode deactivated (released %d resource(s))", len(released))
        self._publish(False)
        return released

    def set_active(self, enabled: bool) -> None:
        if enabled:
            self.activate()
        else:
            self.deactivate()

    def toggle(self) -> bool:
        """Flip the activation state and return the new state."""

        self.set_active(not self.active)
        return self.active

    def reconcile_now(self) -> ReconcileReport | None:
        """Run a pass immediately, bypassing the debounce delay."""

        if self._reconciler is None:
            return None
        report = self._reconciler.reconcile()
        self._last_report = report
        return report

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    def apply_settings(self, settings: Any) -> None:
        delay = getattr(settings, "debounce_delay", None)
        if delay is not None and delay != self._scheduler.delay:
            try:
                self._scheduler.delay = delay
            except (TypeError, ValueError) as exc:
                LOGGER.warning("Ignoring debounce delay %r: %s", delay, exc)
            else:
                LOGGER.debug("Live mode debounce delay set to %.3fs", self._scheduler.delay)
        enabled = getattr(settings, "live_mode_enabled", None)
        if enabled is not None:
            self.set_active(bool(enabled))

    def bind_settings(self, bus: EventBus) -> Subscription:
        """Follow :class:`SettingsChanged` events published on ``bus``."""

        self.unbind_settings()
        self._settings_subscription = bus.subscribe(SettingsChanged, self._handle_settings_changed)
        return self._settings_subscription

    def unbind_settings(self) -> None:
        if self._settings_subscription is not None:
            self._settings_subscription.cancel()
            self._settings_subscription = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run_pass(self) -> None:
        reconciler = self._reconciler
        if reconciler is None:
            return
        self._last_report = reconciler.reconcile()

    def _handle_settings_changed(self, event: SettingsChanged) -> None:
        self.apply_settings(event.settings)

    def _publish(self, active: bool) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(LiveModeToggled(active=active, monitored=len(self.monitored())))
