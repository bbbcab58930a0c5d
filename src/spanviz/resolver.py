"""Boundary-sweep partitioning of overlapping ranges into segments."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from spanviz.errors import InvalidRange
from spanviz.types import FlatSpan, Segment


logger = logging.getLogger(__name__)


def _ordered(active: Iterable[FlatSpan]) -> tuple[int, ...]:
    return tuple(
        row.node_id
        for row in sorted(active, key=lambda row: (row.discovery_index, row.node_id))
    )


def _check_spans(spans: Sequence[FlatSpan]) -> None:
    seen: set[int] = set()
    for row in spans:
        if row.span.end < row.span.start:
            raise InvalidRange(
                f"negative-length range [{row.span.start}, {row.span.end})",
                node_id=row.node_id,
                start=row.span.start,
                end=row.span.end,
            )
        if row.node_id in seen:
            raise ValueError(f"node {row.node_id} appears more than once")
        seen.add(row.node_id)


def resolve_overlaps(spans: Sequence[FlatSpan]) -> list[Segment]:
    """Partition ``[min start, max end)`` into maximal constant-coverage segments.

    Algorithm:
    1. Collect distinct start/end points as sorted boundaries.
    2. Sweep the boundaries keeping the set of active non-empty ranges.
    3. At a point ``k`` holding zero-length ranges, emit a zero-width segment
       covered by those ranges plus every non-empty range with
       ``start <= k <= end``.
    4. Between consecutive boundaries emit ``[b_i, b_i+1)`` covered by the
       active set; uncovered stretches become empty-coverage segments.
    5. Merge neighbouring non-zero-width segments with equal coverage.

    Covering ids are ordered by discovery index (outer-to-inner).
    """

    if not spans:
        return []
    _check_spans(spans)

    starts: dict[int, list[FlatSpan]] = defaultdict(list)
    ends: dict[int, list[FlatSpan]] = defaultdict(list)
    zero_width: dict[int, list[FlatSpan]] = defaultdict(list)
    boundary_set: set[int] = set()
    for row in spans:
        boundary_set.add(row.span.start)
        boundary_set.add(row.span.end)
        if row.span.is_empty:
            zero_width[row.span.start].append(row)
        else:
            starts[row.span.start].append(row)
            ends[row.span.end].append(row)
    boundaries = sorted(boundary_set)

    segments: list[Segment] = []
    active: dict[int, FlatSpan] = {}

    def _emit(start: int, end: int, node_ids: tuple[int, ...]) -> None:
        previous = segments[-1] if segments else None
        if (
            previous is not None
            and start != end
            and not previous.is_zero_width
            and previous.end == start
            and previous.node_ids == node_ids
        ):
            segments[-1] = Segment(start=previous.start, end=end, node_ids=node_ids)
            return
        segments.append(Segment(start=start, end=end, node_ids=node_ids))

    for idx, point in enumerate(boundaries):
        markers = zero_width.get(point)
        if markers:
            # Ranges ending or starting at the point both touch the marker.
            touching = [*active.values(), *starts.get(point, ()), *markers]
            _emit(point, point, _ordered(touching))
        for row in ends.get(point, ()):
            del active[row.node_id]
        for row in starts.get(point, ()):
            active[row.node_id] = row
        if idx + 1 < len(boundaries):
            _emit(point, boundaries[idx + 1], _ordered(active.values()))

    if active:
        raise AssertionError(f"ranges left open after sweep: {sorted(active)}")
    logger.debug(
        "resolved %d ranges over %d boundaries into %d segments",
        len(spans),
        len(boundaries),
        len(segments),
    )
    return segments
