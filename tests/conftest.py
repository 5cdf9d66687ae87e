"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path
from types import SimpleNamespace
from typing import Callable

import pytest

from autorevert.editor.windows import WindowManager
from autorevert.editor.workspace import DocumentWorkspace
from autorevert.events import EventBus
from autorevert.live.host import WorkspaceHost
from helpers import FakeTimerFactory, StubHost


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("AUTOREVERT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AUTOREVERT_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def fake_timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def stub_host() -> StubHost:
    return StubHost()


@pytest.fixture
def editor_host() -> SimpleNamespace:
    bus: EventBus = EventBus()
    workspace = DocumentWorkspace(event_bus=bus)
    windows = WindowManager(workspace, event_bus=bus)
    host = WorkspaceHost(windows, bus)
    return SimpleNamespace(bus=bus, workspace=workspace, windows=windows, host=host)


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _make(name: str, text: str = "content\n") -> Path:
        target = tmp_path / name
        target.write_text(text, encoding="utf-8")
        return target

    return _make
