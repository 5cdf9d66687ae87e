"""Window and pane layout for the headless editor host."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from ..events import EventBus, TabShown, WindowLayoutChanged
from .workspace import DocumentTab, DocumentWorkspace

__all__ = ["EditorPane", "EditorWindow", "WindowManager"]

LOGGER = logging.getLogger(__name__)


def _generate_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass(slots=True, eq=False)
class EditorPane:
    """A single on-screen surface displaying at most one tab."""

    id: str
    window_id: str
    tab: DocumentTab | None = None


@dataclass(slots=True, eq=False)
class EditorWindow:
    """A top-level window holding an ordered list of panes."""

    id: str
    title: str = ""
    minimized: bool = False
    panes: List[EditorPane] = field(default_factory=list)

    @property
    def displayed(self) -> bool:
        return not self.minimized

    def tabs(self) -> list[DocumentTab]:
        return [pane.tab for pane in self.panes if pane.tab is not None]


class WindowManager:
    """Owns every window of the host and keeps panes pointing at open tabs.

    Layout mutations publish :class:`WindowLayoutChanged`; a pane switching
    to another tab publishes :class:`TabShown`.
    """

    def __init__(self, workspace: DocumentWorkspace, *, event_bus: EventBus | None = None) -> None:
        self._workspace = workspace
        self._event_bus = event_bus
        self._windows: Dict[str, EditorWindow] = {}
        self._order: List[str] = []
        workspace.add_tab_closed_listener(self._handle_tab_closed)

    @property
    def workspace(self) -> DocumentWorkspace:
        return self._workspace

    # ------------------------------------------------------------------
    # Window lifecycle
    # ------------------------------------------------------------------
    def open_window(self, *, tab: DocumentTab | None = None, title: str = "") -> EditorWindow:
        """Open a window with one pane showing ``tab`` (default: the active tab)."""

        shown = tab if tab is not None else self._workspace.active_tab
        self._require_open(shown)
        window = EditorWindow(id=_generate_id("window"), title=title)
        window.panes.append(EditorPane(id=_generate_id("pane"), window_id=window.id, tab=shown))
        self._windows[window.id] = window
        self._order.append(window.id)
        self._publish_layout(window.id, "open")
        return window

    def close_window(self, window_id: str) -> EditorWindow:
        window = self.get_window(window_id)
        self._windows.pop(window_id)
        self._order.remove(window_id)
        self._publish_layout(window_id, "close")
        return window

    def minimize(self, window_id: str) -> None:
        window = self.get_window(window_id)
        if window.minimized:
            return
        window.minimized = True
        self._publish_layout(window_id, "minimize")

    def restore(self, window_id: str) -> None:
        window = self.get_window(window_id)
        if not window.minimized:
            return
        window.minimized = False
        self._publish_layout(window_id, "restore")

    # ------------------------------------------------------------------
    # Pane operations
    # ------------------------------------------------------------------
    def split_pane(self, pane_id: str, *, tab: DocumentTab | None = None) -> EditorPane:
        """Insert a new pane after ``pane_id`` showing ``tab`` (default: same tab)."""

        window, index = self._locate_pane(pane_id)
        source = window.panes[index]
        shown = tab if tab is not None else source.tab
        self._require_open(shown)
        pane = EditorPane(id=_generate_id("pane"), window_id=window.id, tab=shown)
        window.panes.insert(index + 1, pane)
        self._publish_layout(window.id, "split")
        return pane

    def close_pane(self, pane_id: str) -> None:
        window, index = self._locate_pane(pane_id)
        if len(window.panes) == 1:
            raise ValueError(f"Cannot close the only pane of window {window.id}")
        window.panes.pop(index)
        self._publish_layout(window.id, "close-pane")

    def show_tab(self, pane_id: str, tab: DocumentTab | None) -> EditorPane:
        """Display ``tab`` in the pane; ``None`` empties it."""

        window, index = self._locate_pane(pane_id)
        pane = window.panes[index]
        self._require_open(tab)
        if pane.tab is tab:
            return pane
        pane.tab = tab
        self._publish_shown(pane)
        return pane

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    def get_window(self, window_id: str) -> EditorWindow:
        window = self._windows.get(window_id)
        if window is None:
            raise KeyError(f"Unknown window_id: {window_id}")
        return window

    def iter_windows(self) -> Iterator[EditorWindow]:
        for window_id in self._order:
            yield self._windows[window_id]

    def displayed_panes(self) -> list[EditorPane]:
        """Return every pane of every window currently on screen."""

        panes: list[EditorPane] = []
        for window in self.iter_windows():
            if window.displayed:
                panes.extend(window.panes)
        return panes

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _locate_pane(self, pane_id: str) -> tuple[EditorWindow, int]:
        for window in self.iter_windows():
            for index, pane in enumerate(window.panes):
                if pane.id == pane_id:
                    return window, index
        raise KeyError(f"Unknown pane_id: {pane_id}")

    @staticmethod
    def _require_open(tab: DocumentTab | None) -> None:
        if tab is not None and tab.closed:
            raise ValueError(f"Tab {tab.id} is closed")

    def _handle_tab_closed(self, tab: DocumentTab) -> None:
        fallback = self._workspace.active_tab
        for window in self.iter_windows():
            for pane in window.panes:
                if pane.tab is tab:
                    pane.tab = fallback
                    self._publish_shown(pane)

    def _publish_shown(self, pane: EditorPane) -> None:
        if self._event_bus is None:
            return
        tab_id = pane.tab.id if pane.tab is not None else None
        self._event_bus.publish(TabShown(window_id=pane.window_id, pane_id=pane.id, tab_id=tab_id))

    def _publish_layout(self, window_id: str, reason: str) -> None:
        LOGGER.debug("Window %s layout changed (%s)", window_id, reason)
        if self._event_bus is None:
            return
        self._event_bus.publish(WindowLayoutChanged(window_id=window_id, reason=reason))
