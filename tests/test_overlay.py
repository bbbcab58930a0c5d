"""Tests for spanviz.overlay module."""

from __future__ import annotations

import pytest

from spanviz.errors import InvalidRange, UnresolvedNode
from spanviz.overlay import OverlayModel, build_overlay
from spanviz.span_model import TokenTreeBuilder, token_tree_from_dict


def _three_way() -> OverlayModel:
    builder = TokenTreeBuilder("abcdefghijkl")
    outer = builder.add_node("A", kind="ident", span=(0, 10))
    builder.add_node("B", kind="ident", span=(3, 7), parent=outer)
    builder.add_node("C", kind="ident", span=(5, 12), parent=outer)
    return build_overlay(builder.build())


class TestBuildOverlay:
    def test_partial_overlap_scenario(self) -> None:
        model = _three_way()
        assert [(row.start, row.end, row.node_ids) for row in model.segments] == [
            (0, 3, (0,)),
            (3, 5, (0, 1)),
            (5, 7, (0, 1, 2)),
            (7, 10, (0, 2)),
            (10, 12, (2,)),
        ]
        assert [row.text for row in model.segments] == ["abc", "de", "fg", "hij", "kl"]
        assert model.segments[2].inner_to_outer == (2, 1, 0)

    def test_identical_ranges_single_segment(self) -> None:
        builder = TokenTreeBuilder("0123456")
        builder.add_node("first", span=(2, 5))
        builder.add_node("second", span=(2, 5))
        model = build_overlay(builder.build())
        assert len(model.segments) == 1
        assert model.segments[0].node_ids == (0, 1)
        assert model.span_groups == ((0, 1),)
        assert model.nodes_sharing_span(1) == (0, 1)

    def test_zero_width_marker(self) -> None:
        builder = TokenTreeBuilder("0123456789")
        outer = builder.add_node("outer", span=(0, 10))
        marker = builder.add_node("marker", span=(4, 4), parent=outer)
        model = build_overlay(builder.build())
        assert [(row.start, row.end) for row in model.segments] == [(0, 4), (4, 4), (4, 10)]
        assert model.segments[1].node_ids == (outer, marker)
        assert model.segments[1].text == ""
        assert [row.segment_id for row in model.segments_for_node(marker)] == [1]
        assert model.zero_width_at(4) == (model.segments[1],)
        assert model.segment_at(4) == model.segments[2]

    def test_empty_tree_is_valid(self) -> None:
        builder = TokenTreeBuilder("some text")
        builder.add_node("unranged")
        model = build_overlay(builder.build())
        assert model.segments == ()
        assert model.extent is None
        assert model.segment_at(0) is None
        assert model.segments_for_node(0) == ()

    def test_end_past_buffer_fails(self) -> None:
        with pytest.raises(InvalidRange) as excinfo:
            token_tree_from_dict({
                "source_text": "short",
                "nodes": [
                    {"label": "ok", "span": [0, 2]},
                    {"label": "bad", "span": [1, 40]},
                ],
            })
        assert excinfo.value.node_id == 1


class TestOverlayLookups:
    def test_segment_at_binary_search(self) -> None:
        model = _three_way()
        assert model.segment_at(0).segment_id == 0  # type: ignore[union-attr]
        assert model.segment_at(6).segment_id == 2  # type: ignore[union-attr]
        assert model.segment_at(11).segment_id == 4  # type: ignore[union-attr]
        assert model.segment_at(12) is None
        assert model.segment_at(-1) is None

    def test_stack_at_is_outer_first(self) -> None:
        model = _three_way()
        assert [node.label for node in model.stack_at(6)] == ["A", "B", "C"]
        assert model.covering_at(8) == (0, 2)

    def test_segments_for_node_covers_range_exactly(self) -> None:
        model = _three_way()
        rows = model.segments_for_node(2)
        assert rows[0].start == 5
        assert rows[-1].end == 12
        assert "".join(row.text for row in rows) == "fghijkl"

    def test_unknown_node_lookup_raises(self) -> None:
        model = _three_way()
        with pytest.raises(UnresolvedNode):
            model.segments_for_node(99)
        with pytest.raises(UnresolvedNode):
            model.nodes_sharing_span(-1)

    def test_highlight_uses_innermost_node(self) -> None:
        model = _three_way()
        assert model.highlight_for_segment(1) == (1, 2)
        assert model.highlight_for_segment(4) == (2, 3, 4)

    def test_highlight_uncovered_segment(self) -> None:
        builder = TokenTreeBuilder("0123456789")
        builder.add_node("a", span=(0, 2))
        builder.add_node("b", span=(6, 8))
        model = build_overlay(builder.build())
        assert model.segments[1].node_ids == ()
        assert model.highlight_for_segment(1) == (1,)

    def test_neighbours_and_boundaries(self) -> None:
        model = _three_way()
        assert model.neighbours(0) == (None, 1)
        assert model.neighbours(4) == (3, None)
        boundary = model.boundary_at(5)
        assert boundary is not None
        assert boundary.segment_ids == (1, 2)
        assert model.boundary_at(4) is None
        assert [row.position for row in model.boundaries] == [0, 3, 5, 7, 10, 12]

    def test_unknown_segment_raises(self) -> None:
        with pytest.raises(LookupError):
            _three_way().segment(5)

    def test_next_node_start(self) -> None:
        model = _three_way()
        assert model.next_node_start(0) == 3
        assert model.next_node_start(3) == 5
        assert model.next_node_start(5) is None

    def test_text_reconstructs_extent(self) -> None:
        builder = TokenTreeBuilder("xx hello world yy")
        builder.add_node("hello", span=(3, 8))
        builder.add_node("world", span=(9, 14))
        model = build_overlay(builder.build())
        extent = model.extent
        assert extent is not None
        assert "".join(row.text for row in model.segments) == model.source_text[extent.start:extent.end]

    def test_rebuild_is_deterministic(self) -> None:
        first = _three_way()
        second = _three_way()
        assert first.segments == second.segments
        assert first.boundaries == second.boundaries

    def test_boundary_positions_match_boundaries(self) -> None:
        model = _three_way()
        assert model.boundary_positions == (0, 3, 5, 7, 10, 12)
        for row in model.boundaries:
            assert model.boundary_at(row.position) == row

    def test_indexes_are_read_only(self) -> None:
        model = _three_way()
        with pytest.raises(TypeError):
            model.node_segments[0] = ()  # type: ignore[index]
        with pytest.raises(TypeError):
            model.span_group_of[0] = 1  # type: ignore[index]


class TestZeroWidthTouching:
    def test_marker_between_touching_ranges(self) -> None:
        builder = TokenTreeBuilder("0123456789")
        left = builder.add_node("left", span=(0, 4))
        marker = builder.add_node("marker", span=(4, 4))
        right = builder.add_node("right", span=(4, 8))
        model = build_overlay(builder.build())
        assert [(row.start, row.end, row.node_ids) for row in model.segments] == [
            (0, 4, (left,)),
            (4, 4, (left, marker, right)),
            (4, 8, (right,)),
        ]
        assert [row.segment_id for row in model.segments_for_node(left)] == [0, 1]
        assert [row.segment_id for row in model.segments_for_node(right)] == [1, 2]
