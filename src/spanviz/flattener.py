"""Linearize a token tree into ranged spans in pre-order."""

from __future__ import annotations

import logging

from spanviz.span_model import TokenTree
from spanviz.types import FlatSpan


logger = logging.getLogger(__name__)


def discovery_order(tree: TokenTree) -> dict[int, int]:
    """Map every node id (ranged or not) to its pre-order rank."""

    return {node.node_id: rank for rank, (node, _) in enumerate(tree.iter_preorder())}


def flatten_token_tree(tree: TokenTree) -> list[FlatSpan]:
    """Collect ``FlatSpan`` rows for every node that carries a range.

    Depth and discovery index come from the tree walk and only serve as
    deterministic tie-breakers; a child's range may lie outside its parent's.
    Nodes without a range are skipped here but stay reachable via the tree.
    """

    rows: list[FlatSpan] = []
    skipped = 0
    for rank, (node, depth) in enumerate(tree.iter_preorder()):
        if node.span is None:
            skipped += 1
            continue
        rows.append(
            FlatSpan(
                node_id=node.node_id,
                span=node.span,
                depth=depth,
                discovery_index=rank,
            ),
        )
    logger.debug("flattened %d ranged nodes (%d without range)", len(rows), skipped)
    return rows
