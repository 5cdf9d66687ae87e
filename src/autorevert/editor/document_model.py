"""Dataclasses representing document state held by an editor tab."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(slots=True)
class DocumentMetadata:
    """Metadata describing a loaded document."""

    path: Optional[Path] = None
    language: str = "text"
    encoding: str = "utf-8"
    newline: str = "\n"


@dataclass(slots=True)
class DocumentState:
    """Text buffer plus the metadata it was loaded with."""

    text: str = ""
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)

    @property
    def backing_path(self) -> Path | None:
        """Return the file behind this buffer; an empty path counts as none."""

        path = self.metadata.path
        if path is None or not str(path):
            return None
        return path


__all__ = ["DocumentMetadata", "DocumentState"]
