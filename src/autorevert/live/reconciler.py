"""Reconciles the live-mode state table against what is currently visible."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Iterable

from .host import LiveModeAdapter, ResourceMetadata
from .sampler import VisibilitySampler

__all__ = ["Reconciler", "ReconcileReport"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ReconcileReport:
    """Outcome of one reconciliation pass.

    ``failed`` lists resources whose adapter call raised; they are retried by
    the next pass through the normal diff. ``monitored`` is the state table
    as it stood when the pass finished.
    """

    enabled: tuple[Hashable, ...] = ()
    disabled: tuple[Hashable, ...] = ()
    purged: tuple[Hashable, ...] = ()
    failed: tuple[Hashable, ...] = ()
    monitored: frozenset[Hashable] = frozenset()

    @property
    def changed(self) -> bool:
        return bool(self.enabled or self.disabled or self.purged)


class Reconciler:
    """Owns the set of resources this process has put into live mode.

    Each :meth:`reconcile` call samples visibility afresh, enables live mode
    on newly visible resources, disables it on resources that left the
    screen, and forgets resources the host has dropped. The monitored set is
    only ever mutated here.
    """

    def __init__(
        self,
        sampler: VisibilitySampler,
        metadata: ResourceMetadata,
        adapter: LiveModeAdapter,
        *,
        cancel_pending: Callable[[], Any] | None = None,
    ) -> None:
        self._sampler = sampler
        self._metadata = metadata
        self._adapter = adapter
        self._cancel_pending = cancel_pending
        self._monitored: set[Hashable] = set()
        self._passes = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def passes(self) -> int:
        """Number of completed reconciliation passes."""

        return self._passes

    def monitored(self) -> frozenset[Hashable]:
        return frozenset(self._monitored)

    def is_monitored(self, resource: Hashable) -> bool:
        return resource in self._monitored

    def reconcile(self) -> ReconcileReport:
        """Run one full diff-and-apply pass and return what it did."""

        if self._cancel_pending is not None:
            self._cancel_pending()

        visible = self._sampler.sample()
        to_enable = visible - self._monitored
        to_disable = self._monitored - visible

        enabled: list[Hashable] = []
        disabled: list[Hashable] = []
        purged: list[Hashable] = []
        failed: list[Hashable] = []

        for resource in to_enable:
            if not self._metadata.is_live(resource):
                continue
            if self._apply(resource, True):
                self._monitored.add(resource)
                enabled.append(resource)
            else:
                failed.append(resource)

        for resource in to_disable:
            if not self._metadata.is_live(resource):
                self._monitored.discard(resource)
                purged.append(resource)
                continue
            if self._apply(resource, False):
                self._monitored.discard(resource)
                disabled.append(resource)
            else:
                failed.append(resource)

        stale = [resource for resource in self._monitored if not self._metadata.is_live(resource)]
        if stale:
            self._monitored.difference_update(stale)
            purged.extend(stale)

        self._passes += 1
        report = ReconcileReport(
            enabled=tuple(enabled),
            disabled=tuple(disabled),
            purged=tuple(purged),
            failed=tuple(failed),
            monitored=frozenset(self._monitored),
        )
        if report.changed or failed:
            LOGGER.debug(
                "Live mode pass %d: enabled=%s disabled=%s purged=%s failed=%s monitored=%d",
                self._passes,
                _labels(enabled),
                _labels(disabled),
                _labels(purged),
                _labels(failed),
                len(self._monitored),
            )
        return report

    def release(self) -> tuple[Hashable, ...]:
        """Disable live mode on every monitored resource and clear the table.

        The table is cleared even when a disable call fails; the failure is
        logged and the host may be left with live mode on for that resource.
        """

        released = tuple(self._monitored)
        for resource in released:
            if not self._metadata.is_live(resource):
                continue
            try:
                self._adapter.set_live_mode(resource, False)
            except Exception as exc:
                LOGGER.warning("Could not disable live mode on %s during release: %s", _label(resource), exc)
        self._monitored.clear()
        if released:
            LOGGER.debug("Released live mode on %d resource(s)", len(released))
        return released

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _apply(self, resource: Hashable, enabled: bool) -> bool:
        try:
            self._adapter.set_live_mode(resource, enabled)
        except Exception as exc:
            LOGGER.warning(
                "Failed to turn live mode %s for %s: %s",
                "on" if enabled else "off",
                _label(resource),
                exc,
            )
            LOGGER.debug("Live mode adapter failure", exc_info=True)
            return False
        return True


def _label(resource: Hashable) -> str:
    identifier = getattr(resource, "id", None)
    if identifier:
        return str(identifier)
    return repr(resource)


def _labels(resources: Iterable[Hashable]) -> list[str]:
    return sorted(_label(resource) for resource in resources)
