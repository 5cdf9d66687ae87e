"""Workspace models managing the list of open document tabs."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List

from ..errors import StaleResourceError
from ..events import EventBus, TabListChanged
from ..utils import file_io
from .document_model import DocumentMetadata, DocumentState

__all__ = ["DocumentTab", "DocumentWorkspace", "TabListener"]

LOGGER = logging.getLogger(__name__)


TabListener = Callable[["DocumentTab"], None]


def _generate_tab_id() -> str:
    return uuid.uuid4().hex


def _normalize_path(path: Path | str | None) -> Path | None:
    if path is None:
        return None
    if isinstance(path, Path):
        return path.expanduser().resolve()
    if not path:
        return None
    return Path(path).expanduser().resolve()


@dataclass(slots=True, eq=False)
class DocumentTab:
    """An open buffer: one document plus the runtime flags the host tracks.

    Tabs compare and hash by identity, so a tab closed and a new tab opened
    on the same file are different resources.
    """

    id: str
    document: DocumentState
    title: str = "Untitled"
    untitled_index: int | None = None
    closed: bool = False
    live_mode: bool = False

    @property
    def path(self) -> Path | None:
        return self.document.backing_path

    @property
    def is_live(self) -> bool:
        return not self.closed

    def set_live_mode(self, enabled: bool) -> None:
        """Toggle auto-reload for this tab; no-op when the flag already matches."""

        if self.closed:
            raise StaleResourceError(self.id)
        if self.live_mode == enabled:
            return
        self.live_mode = enabled
        LOGGER.debug("Live mode %s for tab %s (%s)", "on" if enabled else "off", self.id, self.title)

    def update_title(self, fallback: str = "Untitled") -> None:
        """Refresh the human-friendly title used in the tab strip."""

        path = self.document.metadata.path
        if path is not None:
            candidate = path.name or str(path)
        else:
            suffix = f" {self.untitled_index}" if self.untitled_index else ""
            candidate = f"{fallback}{suffix}".strip()
        self.title = candidate


class DocumentWorkspace:
    """Manages the open tabs and the active selection.

    Opening or closing a tab is published as :class:`TabListChanged` on the
    optional event bus.
    """

    def __init__(self, *, event_bus: EventBus | None = None) -> None:
        self._event_bus = event_bus
        self._tabs: Dict[str, DocumentTab] = {}
        self._order: List[str] = []
        self._active_tab_id: str | None = None
        self._closed_listeners: List[TabListener] = []
        self._untitled_counter = 1

    # ------------------------------------------------------------------
    # Tab lifecycle helpers
    # ------------------------------------------------------------------
    def create_tab(
        self,
        *,
        document: DocumentState | None = None,
        path: Path | str | None = None,
        text: str = "",
        title: str | None = None,
        make_active: bool = True,
        tab_id: str | None = None,
    ) -> DocumentTab:
        """Create a new tab around ``document`` (or a fresh one for ``path``)."""

        resolved_path = _normalize_path(path)
        doc = document or DocumentState(text=text, metadata=DocumentMetadata(path=resolved_path))
        if resolved_path is not None:
            doc.metadata.path = resolved_path
        tab_id = tab_id or _generate_tab_id()
        if tab_id in self._tabs:
            raise ValueError(f"Duplicate tab_id: {tab_id}")
        untitled_idx = self._reserve_untitled_index() if doc.metadata.path is None else None
        tab = DocumentTab(id=tab_id, document=doc, untitled_index=untitled_idx)
        tab.update_title(title or "Untitled")
        self._tabs[tab_id] = tab
        self._order.append(tab_id)
        LOGGER.debug("Created tab %s (%s)", tab_id, tab.title)
        self._publish(tab, "created")
        if make_active or self._active_tab_id is None:
            self.set_active_tab(tab_id)
        return tab

    def open_file(self, path: Path | str, *, make_active: bool = True) -> DocumentTab:
        """Return the tab already showing ``path`` or open a new one from disk."""

        resolved = _normalize_path(path)
        if resolved is None:
            raise ValueError("path is required")
        existing = self.find_tab_by_path(resolved)
        if existing is not None:
            if make_active:
                self.set_active_tab(existing.id)
            return existing
        decoded = file_io.read_document(resolved)
        metadata = DocumentMetadata(
            path=resolved,
            language=file_io.detect_format(resolved).value,
            encoding=decoded.encoding,
            newline=decoded.newline,
        )
        document = DocumentState(text=decoded.text, metadata=metadata)
        return self.create_tab(document=document, make_active=make_active)

    def close_tab(self, tab_id: str) -> DocumentTab:
        """Close and return the specified tab; the tab is stale afterwards."""

        if tab_id not in self._tabs:
            raise KeyError(f"Unknown tab_id: {tab_id}")
        tab = self._tabs.pop(tab_id)
        index = self._order.index(tab_id)
        self._order.pop(index)
        tab.closed = True
        LOGGER.debug("Closed tab %s (%s)", tab_id, tab.title)

        if self._active_tab_id == tab_id:
            if self._order:
                fallback_index = index if 0 <= index < len(self._order) else len(self._order) - 1
                self._active_tab_id = self._order[fallback_index]
            else:
                self._active_tab_id = None
        for listener in list(self._closed_listeners):
            listener(tab)
        self._publish(tab, "closed")
        return tab

    def set_active_tab(self, tab_id: str) -> DocumentTab:
        """Mark the provided tab as active."""

        if tab_id not in self._tabs:
            raise KeyError(f"Unknown tab_id: {tab_id}")
        if self._active_tab_id == tab_id:
            return self._tabs[tab_id]
        self._active_tab_id = tab_id
        return self._tabs[tab_id]

    def add_tab_closed_listener(self, listener: TabListener) -> None:
        self._closed_listeners.append(listener)

    def _publish(self, tab: DocumentTab, action: str) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(TabListChanged(tab_id=tab.id, action=action, tab_count=len(self._order)))

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @property
    def active_tab(self) -> DocumentTab | None:
        if self._active_tab_id is None:
            return None
        return self._tabs.get(self._active_tab_id)

    def iter_tabs(self) -> Iterator[DocumentTab]:
        for tab_id in self._order:
            yield self._tabs[tab_id]

    def tab_count(self) -> int:
        return len(self._order)

    def get_tab(self, tab_id: str) -> DocumentTab:
        tab = self._tabs.get(tab_id)
        if tab is None:
            raise KeyError(f"Unknown tab_id: {tab_id}")
        return tab

    def find_tab_by_path(self, path: Path | str) -> DocumentTab | None:
        normalized = _normalize_path(path)
        if normalized is None:
            return None
        for tab in self.iter_tabs():
            tab_path = tab.path
            if tab_path and _normalize_path(tab_path) == normalized:
                return tab
        return None

    def serialize_tabs(self) -> list[dict[str, object]]:
        """Return a simplified representation of open tabs for status output."""

        payload: list[dict[str, object]] = []
        for tab in self.iter_tabs():
            entry: dict[str, object] = {
                "tab_id": tab.id,
                "title": tab.title,
                "live_mode": tab.live_mode,
            }
            if tab.path is not None:
                entry["path"] = str(tab.path)
            payload.append(entry)
        return payload

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _reserve_untitled_index(self) -> int:
        value = self._untitled_counter
        self._untitled_counter += 1
        return value
