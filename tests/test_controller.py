"""Tests for :class:`autorevert.live.controller.LiveModeController`."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from autorevert.events import LiveModeToggled, SettingsChanged
from autorevert.live.controller import LiveModeController
from autorevert.services.settings import Settings
from helpers import StubResource


@pytest.fixture
def controller(stub_host, fake_timers) -> LiveModeController:
    return LiveModeController(stub_host, delay=0.1, timer_factory=fake_timers)


class TestLifecycle:
    def test_activation_runs_an_immediate_pass(self, controller, stub_host) -> None:
        a = StubResource("A")
        stub_host.shown = [a]

        report = controller.activate()

        assert controller.active is True
        assert report is not None and report.enabled == (a,)
        assert controller.monitored() == frozenset({a})
        assert all(len(source.callbacks) == 1 for source in stub_host.sources)

    def test_activate_twice_is_a_no_op(self, controller, stub_host) -> None:
        controller.activate()

        assert controller.activate() is None
        assert all(len(source.callbacks) == 1 for source in stub_host.sources)

    def test_notifications_trigger_one_debounced_pass(self, controller, stub_host, fake_timers) -> None:
        controller.activate()
        a = StubResource("A")
        stub_host.shown = [a]

        for source in stub_host.sources:
            source.emit()
        assert controller.monitored() == frozenset()

        fake_timers.advance(0.1)

        assert controller.monitored() == frozenset({a})
        assert controller.reconciler is not None and controller.reconciler.passes == 2

    def test_deactivation_tears_everything_down(self, controller, stub_host, fake_timers) -> None:
        a, b = StubResource("A"), StubResource("B")
        stub_host.shown = [a, b]
        controller.activate()
        stub_host.sources[0].emit()

        released = controller.deactivate()

        assert set(released) == {a, b}
        assert controller.active is False
        assert controller.monitored() == frozenset()
        assert a.enabled is False and b.enabled is False
        assert all(source.callbacks == [] for source in stub_host.sources)
        assert fake_timers.pending() == []

        calls_before = list(stub_host.calls)
        fake_timers.advance(1.0)
        stub_host.sources[0].emit()
        fake_timers.advance(1.0)
        assert stub_host.calls == calls_before

    def test_deactivate_when_inactive_returns_nothing(self, controller) -> None:
        assert controller.deactivate() == ()

    def test_reactivation_starts_from_a_fresh_table(self, controller, stub_host) -> None:
        a = StubResource("A")
        stub_host.shown = [a]
        controller.activate()
        first = controller.reconciler
        controller.deactivate()

        report = controller.activate()

        assert controller.reconciler is not first
        assert report is not None and report.enabled == (a,)
        assert stub_host.calls_for(a) == [True, False, True]

    def test_toggle_and_set_active(self, controller) -> None:
        assert controller.toggle() is True
        assert controller.toggle() is False
        controller.set_active(True)
        assert controller.active is True
        controller.set_active(False)
        assert controller.active is False

    def test_reconcile_now_bypasses_the_delay(self, controller, stub_host, fake_timers) -> None:
        assert controller.reconcile_now() is None
        controller.activate()
        a = StubResource("A")
        stub_host.shown = [a]
        stub_host.sources[1].emit()

        report = controller.reconcile_now()

        assert report is not None and report.enabled == (a,)
        assert controller.last_report is report
        assert fake_timers.pending() == []


class TestSettings:
    def test_apply_settings_updates_delay_and_activation(self, controller) -> None:
        controller.apply_settings(SimpleNamespace(debounce_delay=0.3, live_mode_enabled=True))

        assert controller.scheduler.delay == 0.3
        assert controller.active is True

        controller.apply_settings(SimpleNamespace(debounce_delay=0.3, live_mode_enabled=False))
        assert controller.active is False

    def test_non_finite_delay_is_ignored_but_activation_applies(self, controller, caplog) -> None:
        with caplog.at_level("WARNING", logger="autorevert.live.controller"):
            controller.apply_settings(SimpleNamespace(debounce_delay=float("nan"), live_mode_enabled=True))

        assert controller.scheduler.delay == 0.1
        assert controller.active is True
        assert "Ignoring debounce delay" in caplog.text

    def test_bound_settings_follow_published_changes(self, controller, editor_host) -> None:
        controller.bind_settings(editor_host.bus)

        editor_host.bus.publish(SettingsChanged(settings=Settings(debounce_delay=0.5, live_mode_enabled=True)))
        assert controller.active is True
        assert controller.scheduler.delay == 0.5

        controller.unbind_settings()
        editor_host.bus.publish(SettingsChanged(settings=Settings(live_mode_enabled=False)))
        assert controller.active is True


class TestWorkspaceHost:
    def test_converges_with_editor_windows(self, editor_host, fake_timers) -> None:
        toggles: list[LiveModeToggled] = []
        editor_host.bus.subscribe(LiveModeToggled, toggles.append)
        controller = LiveModeController(
            editor_host.host, delay=0.1, timer_factory=fake_timers, event_bus=editor_host.bus
        )
        workspace, windows = editor_host.workspace, editor_host.windows
        a = workspace.create_tab(path="/tmp/a.txt")
        b = workspace.create_tab(path="/tmp/b.txt")
        c = workspace.create_tab(path="/tmp/c.txt")
        window = windows.open_window(tab=a)

        controller.activate()
        assert controller.monitored() == frozenset({a})

        windows.split_pane(window.panes[0].id, tab=b)
        windows.show_tab(window.panes[0].id, c)
        fake_timers.advance(0.05)
        assert controller.monitored() == frozenset({a})
        assert len(fake_timers.pending()) == 1

        fake_timers.advance(0.1)
        assert controller.monitored() == frozenset({b, c})
        assert a.live_mode is False
        assert b.live_mode is True and c.live_mode is True

        workspace.close_tab(c.id)
        fake_timers.advance(0.1)
        assert c not in controller.monitored()
        assert all(tab.is_live for tab in controller.monitored())

        windows.minimize(window.id)
        fake_timers.advance(0.1)
        assert controller.monitored() == frozenset()

        controller.deactivate()
        assert [event.active for event in toggles] == [True, False]
        assert toggles[0].monitored == 1

    def test_deactivate_releases_editor_tabs(self, editor_host, fake_timers) -> None:
        controller = LiveModeController(editor_host.host, timer_factory=fake_timers)
        tab = editor_host.workspace.create_tab(path="/tmp/a.txt")
        editor_host.windows.open_window(tab=tab)
        controller.activate()

        controller.deactivate()
        editor_host.workspace.create_tab(path="/tmp/b.txt")

        assert tab.live_mode is False
        assert fake_timers.pending() == []
        assert editor_host.bus.handler_count() == 0
