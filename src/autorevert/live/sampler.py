"""Samples the set of on-screen, file-backed resources."""

from __future__ import annotations

from typing import Hashable

from .host import ResourceMetadata, SurfaceEnumerator

__all__ = ["VisibilitySampler"]


class VisibilitySampler:
    """Answers "which file-backed resources are displayed right now?".

    Every call walks the surfaces afresh; nothing is cached between calls.
    """

    def __init__(self, surfaces: SurfaceEnumerator, metadata: ResourceMetadata) -> None:
        self._surfaces = surfaces
        self._metadata = metadata

    def sample(self) -> frozenset[Hashable]:
        visible: set[Hashable] = set()
        for surface in self._surfaces.list_visible_surfaces():
            resource = self._surfaces.surface_resource(surface)
            if resource is None or resource in visible:
                continue
            path = self._metadata.backing_path(resource)
            if path is None or not str(path):
                continue
            visible.add(resource)
        return frozenset(visible)
