"""Tests for generated-text layout of token trees."""

from __future__ import annotations

import pytest

from spanviz.layout import LayoutOptions, layout_token_tree
from spanviz.span_model import TokenTree, TokenTreeBuilder, token_tree_from_dict


def _fn_tree() -> TokenTree:
    return token_tree_from_dict({
        "source_text": "fn main() { let x = 1; }",
        "nodes": [
            {"label": "fn", "kind": "ident", "span": [0, 2]},
            {"label": "main", "kind": "ident", "span": [3, 7]},
            {"label": "()", "kind": "group", "span": [7, 9]},
            {
                "label": "{}",
                "kind": "group",
                "span": [10, 24],
                "children": [
                    {"label": "let", "kind": "ident", "span": [12, 15]},
                    {"label": "x", "kind": "ident", "span": [16, 17]},
                    {"label": "=", "kind": "punct", "span": [18, 19]},
                    {"label": "1", "kind": "literal", "span": [20, 21]},
                    {"label": ";", "kind": "punct", "span": [21, 22]},
                ],
            },
        ],
    })


class TestLayoutTokenTree:
    def test_braces_indent_and_break_lines(self) -> None:
        generated = layout_token_tree(_fn_tree())
        assert generated.text == "fn main(){\n    let x= 1;\n}\n"

    def test_custom_indent(self) -> None:
        generated = layout_token_tree(_fn_tree(), LayoutOptions(indent_unit="\t"))
        assert generated.text == "fn main(){\n\tlet x= 1;\n}\n"

    def test_pieces_carry_node_ids(self) -> None:
        generated = layout_token_tree(_fn_tree())
        assert [piece.text for piece in generated.pieces_for_node(3)] == ["{", "}"]
        whitespace = [piece for piece in generated.pieces if piece.text.strip() == ""]
        assert whitespace
        assert all(piece.node_id is None for piece in whitespace)

    def test_joint_punct_glues(self) -> None:
        builder = TokenTreeBuilder("")
        builder.add_node("a", kind="ident")
        builder.add_node(":", kind="punct", joint=True)
        builder.add_node(":", kind="punct")
        builder.add_node("b", kind="ident")
        assert layout_token_tree(builder.build()).text == "a:: b"

    def test_invisible_group_prints_children_only(self) -> None:
        builder = TokenTreeBuilder("")
        group = builder.add_node("", kind="group")
        builder.add_node("x", kind="ident", parent=group)
        assert layout_token_tree(builder.build()).text == "x"

    def test_unknown_delimiter_rejected(self) -> None:
        builder = TokenTreeBuilder("")
        builder.add_node("<>", kind="group")
        with pytest.raises(ValueError, match="unknown group delimiter"):
            layout_token_tree(builder.build())
