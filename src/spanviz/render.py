"""Renderer adapter: stable serialization and HTML fragments for overlays.

The serialized form lists segments in source order and nodes in id order,
so downstream templating is deterministic. Re-parsing a payload rebuilds the
tree, recomputes the overlay and checks it against the serialized segments.
"""

from __future__ import annotations

import html
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from spanviz.flattener import discovery_order
from spanviz.io_utils import dumps_json, load_json, save_json
from spanviz.layout import GeneratedText
from spanviz.overlay import OverlayModel, build_overlay
from spanviz.span_model import TokenTree, TokenTreeBuilder
from spanviz.types import TokenKind


FORMAT_VERSION = "spanviz_overlay_v1"


@dataclass(frozen=True, slots=True)
class HtmlOptions:
    class_prefix: str = "n"
    include_segment_ids: bool = True


def _nodes_to_rows(tree: TokenTree) -> list[dict[str, object]]:
    ranks = discovery_order(tree)
    return [
        {
            "node_id": node.node_id,
            "label": node.label,
            "kind": node.kind,
            "span": None if node.span is None else [node.span.start, node.span.end],
            "joint": node.joint,
            "parent_id": node.parent_id,
            "children": list(node.children),
            "discovery_index": ranks[node.node_id],
        }
        for node in tree.nodes
    ]


def _segments_to_rows(model: OverlayModel) -> list[dict[str, object]]:
    return [
        {
            "segment_id": row.segment_id,
            "start_offset": row.start,
            "end_offset": row.end,
            "text": row.text,
            "covering_node_ids": list(row.node_ids),
        }
        for row in model.segments
    ]


def overlay_to_dict(model: OverlayModel) -> dict[str, object]:
    """Serialize an overlay to a deterministic JSON-safe dict."""

    return {
        "format_version": FORMAT_VERSION,
        "source_text": model.source_text,
        "nodes": _nodes_to_rows(model.tree),
        "segments": _segments_to_rows(model),
        "node_segments": {
            str(node_id): list(segment_ids)
            for node_id, segment_ids in sorted(model.node_segments.items())
        },
        "boundaries": [
            {
                "boundary_id": row.boundary_id,
                "position": row.position,
                "segment_ids": list(row.segment_ids),
            }
            for row in model.boundaries
        ],
        "span_groups": [list(group) for group in model.span_groups],
    }


def _tree_from_rows(source_text: str, rows: list[Mapping[str, Any]]) -> TokenTree:
    builder = TokenTreeBuilder(source_text)
    for expected_id, row in enumerate(rows):
        if int(row["node_id"]) != expected_id:
            raise ValueError(f"nodes must be listed in id order, got {row['node_id']} at {expected_id}")
        parent = row.get("parent_id")
        builder.add_node(
            str(row["label"]),
            kind=cast(TokenKind, row["kind"]),
            span=row.get("span"),
            parent=None if parent is None else int(parent),
            joint=bool(row.get("joint", False)),
        )
    tree = builder.build()
    for node, row in zip(tree.nodes, rows, strict=True):
        if list(node.children) != [int(child) for child in row.get("children", [])]:
            raise ValueError(f"node {node.node_id}: children out of id order")
    return tree


def overlay_from_dict(payload: Mapping[str, Any]) -> OverlayModel:
    """Re-parse a serialized overlay.

    Raises ``ValueError`` when the payload's segments disagree with the
    segments recomputed from its nodes.
    """

    version = payload.get("format_version")
    if version != FORMAT_VERSION:
        raise ValueError(f"unsupported overlay format {version!r}")
    tree = _tree_from_rows(str(payload["source_text"]), list(payload.get("nodes", [])))
    model = build_overlay(tree)
    if _segments_to_rows(model) != list(payload.get("segments", [])):
        raise ValueError("serialized segments do not match the recomputed overlay")
    return model


def dumps_overlay(model: OverlayModel, *, pretty: bool = False) -> bytes:
    return dumps_json(overlay_to_dict(model), pretty=pretty)


def save_overlay(model: OverlayModel, path: Path, *, pretty: bool = True) -> None:
    save_json(overlay_to_dict(model), path, pretty=pretty)


def load_overlay(path: Path) -> OverlayModel:
    return overlay_from_dict(load_json(path))


# ---------------------------------------------------------------------------
# HTML fragments
# ---------------------------------------------------------------------------


def _span_html(text: str, classes: list[str], segment_id: int | None) -> str:
    attrs = ""
    if classes:
        attrs += f' class="{" ".join(classes)}"'
    if segment_id is not None:
        attrs += f' data-segment="{segment_id}"'
    return f"<span{attrs}>{html.escape(text, quote=False)}</span>"


def _html_lines(parts: Iterable[tuple[str, list[str], int | None]]) -> str:
    out = ["<div>"]
    for text, classes, segment_id in parts:
        if not text:
            out.append(_span_html("", classes, segment_id))
            continue
        lines = text.split("\n")
        for idx, line in enumerate(lines):
            if idx > 0:
                out.append("</div><div>")
            if line:
                out.append(_span_html(line, classes, segment_id))
    out.append("</div>")
    return "".join(out)


def render_source_html(model: OverlayModel, options: HtmlOptions | None = None) -> str:
    """Render the source buffer, one ``<div>`` per line.

    Segment slices carry one class per covering node (outer to inner); text
    outside the overlay extent is rendered without classes.
    """

    opts = options or HtmlOptions()
    text = model.source_text
    parts: list[tuple[str, list[str], int | None]] = []
    extent = model.extent
    if extent is None:
        if text:
            parts.append((text, [], None))
        return _html_lines(parts)
    if extent.start > 0:
        parts.append((text[:extent.start], [], None))
    for row in model.segments:
        segment_id = row.segment_id if opts.include_segment_ids else None
        classes = [f"{opts.class_prefix}{node_id}" for node_id in row.node_ids]
        parts.append((row.text, classes, segment_id))
    if extent.end < len(text):
        parts.append((text[extent.end:], [], None))
    return _html_lines(parts)


def render_generated_html(generated: GeneratedText, options: HtmlOptions | None = None) -> str:
    """Render laid-out generated text with the same node classes."""

    opts = options or HtmlOptions()
    return _html_lines(
        (
            piece.text,
            [] if piece.node_id is None else [f"{opts.class_prefix}{piece.node_id}"],
            None,
        )
        for piece in generated.pieces
    )
