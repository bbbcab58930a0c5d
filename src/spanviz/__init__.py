"""Span overlay engine: token-tree spans resolved into highlightable segments."""

from spanviz.errors import InvalidRange, OverlayError, UnresolvedNode
from spanviz.flattener import discovery_order, flatten_token_tree
from spanviz.layout import GeneratedPiece, GeneratedText, LayoutOptions, layout_token_tree
from spanviz.line_index import LineIndex
from spanviz.overlay import Boundary, OverlayModel, OverlaySegment, build_overlay
from spanviz.render import (
    FORMAT_VERSION,
    HtmlOptions,
    dumps_overlay,
    load_overlay,
    overlay_from_dict,
    overlay_to_dict,
    render_generated_html,
    render_source_html,
    save_overlay,
)
from spanviz.resolver import resolve_overlaps
from spanviz.span_model import TokenTree, TokenTreeBuilder, token_tree_from_dict
from spanviz.types import FlatSpan, Segment, SourceRange, TokenKind, TokenNode

__all__ = [
    "FORMAT_VERSION",
    "Boundary",
    "FlatSpan",
    "GeneratedPiece",
    "GeneratedText",
    "HtmlOptions",
    "InvalidRange",
    "LayoutOptions",
    "LineIndex",
    "OverlayError",
    "OverlayModel",
    "OverlaySegment",
    "Segment",
    "SourceRange",
    "TokenKind",
    "TokenNode",
    "TokenTree",
    "TokenTreeBuilder",
    "UnresolvedNode",
    "build_overlay",
    "discovery_order",
    "dumps_overlay",
    "flatten_token_tree",
    "layout_token_tree",
    "load_overlay",
    "overlay_from_dict",
    "overlay_to_dict",
    "render_generated_html",
    "render_source_html",
    "resolve_overlaps",
    "save_overlay",
    "token_tree_from_dict",
]
