"""Exception types raised by the live-mode machinery and the editor host."""

from __future__ import annotations

__all__ = ["LiveModeError", "StaleResourceError"]


class LiveModeError(RuntimeError):
    """Base class for failures while toggling live mode on a resource."""


class StaleResourceError(LiveModeError):
    """Raised when live mode is toggled on a resource the host no longer holds.

    Attributes:
        resource_id: Identifier of the stale resource, when known.
    """

    def __init__(self, resource_id: str | None = None, message: str | None = None) -> None:
        self.resource_id = resource_id
        if message is None:
            label = resource_id or "<unknown>"
            message = f"Resource {label} is no longer live"
        super().__init__(message)
