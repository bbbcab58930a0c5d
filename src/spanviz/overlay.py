"""Overlay model: resolved segments plus the indexes that drive highlighting."""

from __future__ import annotations

import bisect
import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from spanviz.errors import UnresolvedNode
from spanviz.flattener import flatten_token_tree
from spanviz.resolver import resolve_overlaps
from spanviz.span_model import TokenTree
from spanviz.types import FlatSpan, SourceRange, TokenNode


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OverlaySegment:
    """A resolved segment with its text slice."""

    segment_id: int
    start: int
    end: int
    text: str
    node_ids: tuple[int, ...]  # outer -> inner

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("end must be >= start")
        if len(self.text) != self.end - self.start:
            raise ValueError("text length must match segment width")

    @property
    def is_zero_width(self) -> bool:
        return self.start == self.end

    @property
    def inner_to_outer(self) -> tuple[int, ...]:
        return tuple(reversed(self.node_ids))

    @property
    def innermost(self) -> int | None:
        return self.node_ids[-1] if self.node_ids else None


@dataclass(frozen=True, slots=True)
class Boundary:
    """A segment edge position and the segments touching it."""

    boundary_id: int
    position: int
    segment_ids: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class OverlayModel:
    """Immutable overlay over one token tree.

    ``node_segments`` maps every ranged node id to the ids of the segments it
    covers; unranged nodes are absent from the map but still resolvable
    through ``tree``.
    """

    tree: TokenTree
    segments: tuple[OverlaySegment, ...]
    node_segments: Mapping[int, tuple[int, ...]]
    boundaries: tuple[Boundary, ...]
    span_groups: tuple[tuple[int, ...], ...]
    segment_starts: tuple[int, ...]
    boundary_positions: tuple[int, ...]
    node_starts: tuple[int, ...]
    span_group_of: Mapping[int, int]

    @property
    def source_text(self) -> str:
        return self.tree.source_text

    @property
    def extent(self) -> SourceRange | None:
        if not self.segments:
            return None
        return SourceRange(self.segments[0].start, self.segments[-1].end)

    def segment(self, segment_id: int) -> OverlaySegment:
        if not 0 <= segment_id < len(self.segments):
            raise LookupError(f"unknown segment id {segment_id!r}")
        return self.segments[segment_id]

    def segment_at(self, position: int) -> OverlaySegment | None:
        """Return the non-zero-width segment containing ``position``."""
        idx = bisect.bisect_right(self.segment_starts, position) - 1
        if idx < 0:
            return None
        row = self.segments[idx]
        if row.start <= position < row.end:
            return row
        return None

    def zero_width_at(self, position: int) -> tuple[OverlaySegment, ...]:
        lo = bisect.bisect_left(self.segment_starts, position)
        hi = bisect.bisect_right(self.segment_starts, position)
        return tuple(row for row in self.segments[lo:hi] if row.is_zero_width)

    def covering_at(self, position: int) -> tuple[int, ...]:
        row = self.segment_at(position)
        return () if row is None else row.node_ids

    def stack_at(self, position: int) -> tuple[TokenNode, ...]:
        """Covering nodes at ``position``, outer first (click inspection)."""
        return tuple(self.tree.nodes[node_id] for node_id in self.covering_at(position))

    def segments_for_node(self, node_id: int) -> tuple[OverlaySegment, ...]:
        if node_id not in self.tree:
            raise UnresolvedNode(node_id)
        return tuple(self.segments[idx] for idx in self.node_segments.get(node_id, ()))

    def highlight_for_segment(self, segment_id: int) -> tuple[int, ...]:
        """Segment ids to highlight when hovering ``segment_id``.

        Hovering lights up everything covered by the innermost token; an
        uncovered segment only highlights itself.
        """
        innermost = self.segment(segment_id).innermost
        if innermost is None:
            return (segment_id,)
        return self.node_segments[innermost]

    def neighbours(self, segment_id: int) -> tuple[int | None, int | None]:
        self.segment(segment_id)
        prev_id = segment_id - 1 if segment_id > 0 else None
        next_id = segment_id + 1 if segment_id + 1 < len(self.segments) else None
        return prev_id, next_id

    def boundary_at(self, position: int) -> Boundary | None:
        positions = self.boundary_positions
        idx = bisect.bisect_left(positions, position)
        if idx < len(positions) and positions[idx] == position:
            return self.boundaries[idx]
        return None

    def next_node_start(self, position: int) -> int | None:
        """First position after ``position`` where some node's range begins."""
        idx = bisect.bisect_right(self.node_starts, position)
        if idx < len(self.node_starts):
            return self.node_starts[idx]
        return None

    def nodes_sharing_span(self, node_id: int) -> tuple[int, ...]:
        if node_id not in self.tree:
            raise UnresolvedNode(node_id)
        group_idx = self.span_group_of.get(node_id)
        if group_idx is None:
            return ()
        return self.span_groups[group_idx]


def _build_boundaries(segments: tuple[OverlaySegment, ...]) -> tuple[Boundary, ...]:
    touching: dict[int, list[int]] = defaultdict(list)
    for row in segments:
        touching[row.start].append(row.segment_id)
        if row.end != row.start:
            touching[row.end].append(row.segment_id)
    return tuple(
        Boundary(boundary_id=idx, position=position, segment_ids=tuple(sorted(touching[position])))
        for idx, position in enumerate(sorted(touching))
    )


def _build_span_groups(
    spans: list[FlatSpan],
) -> tuple[tuple[tuple[int, ...], ...], dict[int, int]]:
    by_range: dict[SourceRange, list[int]] = {}
    for row in spans:
        by_range.setdefault(row.span, []).append(row.node_id)
    groups = tuple(tuple(node_ids) for node_ids in by_range.values())
    group_of = {node_id: idx for idx, group in enumerate(groups) for node_id in group}
    return groups, group_of


def build_overlay(tree: TokenTree) -> OverlayModel:
    """Flatten, resolve and index ``tree`` into an :class:`OverlayModel`."""

    spans = flatten_token_tree(tree)
    resolved = resolve_overlaps(spans)
    text = tree.source_text
    segments = tuple(
        OverlaySegment(
            segment_id=idx,
            start=row.start,
            end=row.end,
            text=text[row.start:row.end],
            node_ids=row.node_ids,
        )
        for idx, row in enumerate(resolved)
    )

    node_segments: dict[int, list[int]] = {row.node_id: [] for row in spans}
    for row in segments:
        for node_id in row.node_ids:
            node_segments[node_id].append(row.segment_id)

    span_groups, span_group_of = _build_span_groups(spans)
    boundaries = _build_boundaries(segments)
    model = OverlayModel(
        tree=tree,
        segments=segments,
        node_segments=MappingProxyType(
            {node_id: tuple(ids) for node_id, ids in node_segments.items()},
        ),
        boundaries=boundaries,
        span_groups=span_groups,
        segment_starts=tuple(row.start for row in segments),
        boundary_positions=tuple(row.position for row in boundaries),
        node_starts=tuple(sorted({row.span.start for row in spans})),
        span_group_of=MappingProxyType(span_group_of),
    )
    logger.debug(
        "built overlay: %d nodes, %d ranged, %d segments",
        len(tree),
        len(spans),
        len(segments),
    )
    return model
