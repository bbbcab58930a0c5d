"""Error taxonomy for span overlay construction and lookup."""
from __future__ import annotations


class OverlayError(Exception):
    """Base class for span overlay failures."""


class InvalidRange(OverlayError, ValueError):
    """Raised when a range is inverted or falls outside the source buffer."""

    def __init__(
        self,
        message: str,
        *,
        node_id: int | None = None,
        start: int | None = None,
        end: int | None = None,
        buffer_length: int | None = None,
    ) -> None:
        self.node_id = node_id
        self.start = start
        self.end = end
        self.buffer_length = buffer_length
        where = f"node {node_id}: " if node_id is not None else ""
        super().__init__(f"{where}{message}")


class UnresolvedNode(OverlayError, LookupError):
    """Raised when a lookup names a node id the model does not contain.

    This is a contract violation by the caller, not a runtime condition.
    """

    def __init__(self, node_id: int) -> None:
        self.node_id = node_id
        super().__init__(f"unknown node id {node_id!r}")
