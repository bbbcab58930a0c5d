"""Core value types for the span overlay engine.

Positions are 0-based character offsets into one Python ``str`` buffer.
Ranges are half-open ``[start, end)``; a zero-length range is a valid
zero-width marker.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

from spanviz.errors import InvalidRange


type TokenKind = Literal["group", "ident", "punct", "literal", "other"]

TOKEN_KINDS: frozenset[str] = frozenset(get_args(TokenKind.__value__))


@dataclass(frozen=True, slots=True, order=True)
class SourceRange:
    """Half-open character range in the source buffer."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise InvalidRange(
                f"start must be >= 0, got {self.start}",
                start=self.start,
                end=self.end,
            )
        if self.end < self.start:
            raise InvalidRange(
                f"end must be >= start, got {self.end} < {self.start}",
                start=self.start,
                end=self.end,
            )

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True, slots=True)
class TokenNode:
    """One token-tree element, addressed by its arena index."""

    node_id: int
    label: str
    kind: TokenKind
    span: SourceRange | None
    children: tuple[int, ...]
    parent_id: int | None
    joint: bool = False

    def __post_init__(self) -> None:
        if self.node_id < 0:
            raise ValueError(f"node_id must be >= 0, got {self.node_id}")
        if self.kind not in TOKEN_KINDS:
            raise ValueError(f"unknown token kind {self.kind!r}")
        if self.parent_id is not None and self.parent_id == self.node_id:
            raise ValueError(f"node {self.node_id} cannot be its own parent")
        if self.joint and self.kind != "punct":
            raise ValueError("joint spacing only applies to punct tokens")


@dataclass(frozen=True, slots=True)
class FlatSpan:
    """A ranged node as discovered by the pre-order walk."""

    node_id: int
    span: SourceRange
    depth: int
    discovery_index: int

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError("depth must be >= 0")
        if self.discovery_index < 0:
            raise ValueError("discovery_index must be >= 0")


@dataclass(frozen=True, slots=True)
class Segment:
    """Maximal sub-range with a constant covering set.

    ``node_ids`` is ordered outer-to-inner (ascending discovery index).
    """

    start: int
    end: int
    node_ids: tuple[int, ...]

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("start must be >= 0")
        if self.end < self.start:
            raise ValueError("end must be >= start")

    @property
    def is_zero_width(self) -> bool:
        return self.start == self.end
