"""Pretty-print a token tree into generated text.

Each printed piece remembers which node produced it, so the generated pane
can be highlighted in step with the source pane. Whitespace and line breaks
carry no node.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from spanviz.span_model import TokenTree
from spanviz.types import TokenNode


_GROUP_DELIMITERS: dict[str, tuple[str, str]] = {
    "()": ("(", ")"),
    "[]": ("[", "]"),
    "{}": ("{", "}"),
    "": ("", ""),
}


class _NeedsSpace(Enum):
    NEVER = "never"
    ALWAYS = "always"
    IF_NOT_PUNCT = "if_not_punct"


@dataclass(frozen=True, slots=True)
class LayoutOptions:
    indent_unit: str = "    "


@dataclass(frozen=True, slots=True)
class GeneratedPiece:
    text: str
    node_id: int | None


@dataclass(frozen=True, slots=True)
class GeneratedText:
    pieces: tuple[GeneratedPiece, ...]

    @property
    def text(self) -> str:
        return "".join(piece.text for piece in self.pieces)

    def pieces_for_node(self, node_id: int) -> tuple[GeneratedPiece, ...]:
        return tuple(piece for piece in self.pieces if piece.node_id == node_id)


class _Printer:
    def __init__(self, tree: TokenTree, options: LayoutOptions) -> None:
        self.tree = tree
        self.options = options
        self.pieces: list[GeneratedPiece] = []
        self.indent = 0
        self.newline = True
        self.needs_space = _NeedsSpace.NEVER

    def _add(self, text: str, node_id: int | None) -> None:
        self.pieces.append(GeneratedPiece(text=text, node_id=node_id))

    def _visit_str(self, text: str, node_id: int) -> None:
        if not text:
            return
        if text == "}":
            self.indent = max(0, self.indent - 1)
            if not self.newline:
                self.newline = True
                self._add("\n", None)
        if self.newline:
            self.newline = False
            for _ in range(self.indent):
                self._add(self.options.indent_unit, None)
        self._add(text, node_id)
        if text == "{":
            self.indent += 1
            self.newline = True
            self._add("\n", None)
        elif text in {";", "}"}:
            self.newline = True
            self._add("\n", None)
        if self.newline:
            self.needs_space = _NeedsSpace.NEVER

    def visit(self, node: TokenNode) -> None:
        if node.kind == "group":
            if node.label not in _GROUP_DELIMITERS:
                raise ValueError(f"node {node.node_id}: unknown group delimiter {node.label!r}")
            open_delim, close_delim = _GROUP_DELIMITERS[node.label]
            self._visit_str(open_delim, node.node_id)
            for child_id in node.children:
                self.visit(self.tree.nodes[child_id])
            self._visit_str(close_delim, node.node_id)
            return
        if node.kind == "punct":
            if self.needs_space is _NeedsSpace.ALWAYS:
                self._add(" ", None)
            self._visit_str(node.label, node.node_id)
            if not node.joint:
                self.needs_space = _NeedsSpace.ALWAYS
        else:
            if self.needs_space is not _NeedsSpace.NEVER:
                self._add(" ", None)
            self._visit_str(node.label, node.node_id)
            self.needs_space = _NeedsSpace.IF_NOT_PUNCT
        for child_id in node.children:
            self.visit(self.tree.nodes[child_id])


def layout_token_tree(tree: TokenTree, options: LayoutOptions | None = None) -> GeneratedText:
    """Render ``tree`` as indented generated text."""

    printer = _Printer(tree, options or LayoutOptions())
    for root_id in tree.roots:
        printer.visit(tree.nodes[root_id])
    return GeneratedText(pieces=tuple(printer.pieces))
