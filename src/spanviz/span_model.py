"""Token-tree arena and its construction surface.

The tree is stored as a flat arena of :class:`TokenNode` values addressed by
dense integer ids. Parents always precede their children in the arena, so
the structure is acyclic by construction. Ranges are validated against the
source buffer once, here, and never repaired downstream.
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, cast

from spanviz.errors import InvalidRange, UnresolvedNode
from spanviz.line_index import LineIndex
from spanviz.types import TOKEN_KINDS, SourceRange, TokenKind, TokenNode


type SpanInput = SourceRange | Sequence[int] | Mapping[str, Any] | None


@dataclass(frozen=True, slots=True)
class TokenTree:
    """Immutable token tree over a single source buffer."""

    source_text: str
    nodes: tuple[TokenNode, ...]
    roots: tuple[int, ...]

    def __post_init__(self) -> None:
        buffer_length = len(self.source_text)
        for idx, node in enumerate(self.nodes):
            if node.node_id != idx:
                raise ValueError(f"node at arena index {idx} has id {node.node_id}")
            if node.parent_id is not None:
                if not 0 <= node.parent_id < idx:
                    raise ValueError(
                        f"node {idx} must come after its parent {node.parent_id}",
                    )
                if idx not in self.nodes[node.parent_id].children:
                    raise ValueError(
                        f"node {idx} is not listed as a child of {node.parent_id}",
                    )
            for child_id in node.children:
                if child_id <= idx or child_id >= len(self.nodes):
                    raise ValueError(f"node {idx} has invalid child {child_id}")
                if self.nodes[child_id].parent_id != idx:
                    raise ValueError(f"child {child_id} does not point back to {idx}")
            span = node.span
            if span is not None and span.end > buffer_length:
                raise InvalidRange(
                    f"range [{span.start}, {span.end}) exceeds buffer length {buffer_length}",
                    node_id=idx,
                    start=span.start,
                    end=span.end,
                    buffer_length=buffer_length,
                )
        for root_id in self.roots:
            if root_id >= len(self.nodes) or self.nodes[root_id].parent_id is not None:
                raise ValueError(f"root {root_id} is not a parentless node")
        if len(self.roots) != sum(1 for node in self.nodes if node.parent_id is None):
            raise ValueError("roots must list every parentless node exactly once")

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return isinstance(node_id, int) and 0 <= node_id < len(self.nodes)

    def node(self, node_id: int) -> TokenNode:
        if node_id not in self:
            raise UnresolvedNode(node_id)
        return self.nodes[node_id]

    def parent_of(self, node_id: int) -> TokenNode | None:
        parent_id = self.node(node_id).parent_id
        return None if parent_id is None else self.nodes[parent_id]

    def iter_preorder(self) -> Iterator[tuple[TokenNode, int]]:
        """Yield ``(node, depth)`` parent-first, children in source order."""
        stack: list[tuple[int, int]] = [(root_id, 0) for root_id in reversed(self.roots)]
        while stack:
            node_id, depth = stack.pop()
            node = self.nodes[node_id]
            yield node, depth
            stack.extend((child_id, depth + 1) for child_id in reversed(node.children))

    def text_of(self, node_id: int) -> str | None:
        span = self.node(node_id).span
        if span is None:
            return None
        return self.source_text[span.start:span.end]


@dataclass(slots=True)
class _PendingNode:
    label: str
    kind: TokenKind
    span: SourceRange | None
    parent_id: int | None
    joint: bool
    children: list[int]


class TokenTreeBuilder:
    """Incrementally assemble a :class:`TokenTree` in one pass.

    Node ids are assigned densely in insertion order; a parent must be added
    before its children.
    """

    def __init__(self, source_text: str) -> None:
        self.source_text = source_text
        self._line_index: LineIndex | None = None
        self._pending: list[_PendingNode] = []
        self._roots: list[int] = []

    @property
    def line_index(self) -> LineIndex:
        if self._line_index is None:
            self._line_index = LineIndex.from_text(self.source_text)
        return self._line_index

    def _coerce_span(self, node_id: int, span: SpanInput) -> SourceRange | None:
        if span is None or isinstance(span, SourceRange):
            start_end = None if span is None else (span.start, span.end)
        elif isinstance(span, Mapping):
            start_end = (
                self._line_column_offset(node_id, span["start"]),
                self._line_column_offset(node_id, span["end"]),
            )
        else:
            if len(span) != 2:
                raise ValueError(f"node {node_id}: span must be a [start, end] pair")
            start_end = (int(span[0]), int(span[1]))
        if start_end is None:
            return None
        start, end = start_end
        buffer_length = len(self.source_text)
        if start < 0 or end < start or end > buffer_length:
            raise InvalidRange(
                f"invalid range [{start}, {end}) for buffer length {buffer_length}",
                node_id=node_id,
                start=start,
                end=end,
                buffer_length=buffer_length,
            )
        return span if isinstance(span, SourceRange) else SourceRange(start, end)

    def _line_column_offset(self, node_id: int, point: Mapping[str, Any]) -> int:
        try:
            return self.line_index.offset(int(point["line"]), int(point["column"]))
        except InvalidRange as exc:
            raise InvalidRange(
                str(exc),
                node_id=node_id,
                buffer_length=len(self.source_text),
            ) from exc

    def add_node(
        self,
        label: str,
        *,
        kind: TokenKind = "other",
        span: SpanInput = None,
        parent: int | None = None,
        joint: bool = False,
    ) -> int:
        """Append a node and return its id."""
        node_id = len(self._pending)
        if kind not in TOKEN_KINDS:
            raise ValueError(f"node {node_id}: unknown token kind {kind!r}")
        if parent is not None and not 0 <= parent < node_id:
            raise UnresolvedNode(parent)
        source_range = self._coerce_span(node_id, span)
        self._pending.append(
            _PendingNode(
                label=label,
                kind=kind,
                span=source_range,
                parent_id=parent,
                joint=joint,
                children=[],
            ),
        )
        if parent is None:
            self._roots.append(node_id)
        else:
            self._pending[parent].children.append(node_id)
        return node_id

    def build(self) -> TokenTree:
        nodes = tuple(
            TokenNode(
                node_id=idx,
                label=row.label,
                kind=row.kind,
                span=row.span,
                children=tuple(row.children),
                parent_id=row.parent_id,
                joint=row.joint,
            )
            for idx, row in enumerate(self._pending)
        )
        return TokenTree(
            source_text=self.source_text,
            nodes=nodes,
            roots=tuple(self._roots),
        )


def token_tree_from_dict(payload: Mapping[str, Any]) -> TokenTree:
    """Build a tree from a nested JSON-safe payload.

    Expected shape::

        {"source_text": "...",
         "nodes": [{"label": "{}", "kind": "group", "span": [0, 9],
                    "children": [...]}]}

    ``span`` may be omitted or null (unknown), a ``[start, end]`` offset pair,
    or ``{"start": {"line": 1, "column": 0}, "end": {...}}``.
    """
    builder = TokenTreeBuilder(str(payload.get("source_text", "")))
    stack: list[tuple[Mapping[str, Any], int | None]] = [
        (cast(Mapping[str, Any], row), None) for row in reversed(payload.get("nodes", []))
    ]
    while stack:
        row, parent = stack.pop()
        node_id = builder.add_node(
            str(row.get("label", "")),
            kind=cast(TokenKind, row.get("kind", "other")),
            span=row.get("span"),
            parent=parent,
            joint=bool(row.get("joint", False)),
        )
        stack.extend((child, node_id) for child in reversed(row.get("children", [])))
    return builder.build()
