"""Headless editor host: documents, tabs, workspace and window layout."""

from .document_model import DocumentMetadata, DocumentState
from .windows import EditorPane, EditorWindow, WindowManager
from .workspace import DocumentTab, DocumentWorkspace

__all__ = [
    "DocumentMetadata",
    "DocumentState",
    "DocumentTab",
    "DocumentWorkspace",
    "EditorPane",
    "EditorWindow",
    "WindowManager",
]
