#!/usr/bin/env python3
"""Build a span overlay from a token-tree payload.

Reads a JSON token tree (``{"source_text": ..., "nodes": [...]}``), resolves
its spans into segments and writes the serialized overlay. Optionally writes
an HTML fragment with the source pane and the generated-text pane.

Usage::

    python3 scripts/render_span_overlay.py --tree tree.json
    python3 scripts/render_span_overlay.py --tree tree.json --output overlay.json --html view.html

Structured JSON output goes to stdout (or ``--output``); human messages go to
stderr.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from spanviz.errors import OverlayError
from spanviz.io_utils import load_json
from spanviz.layout import LayoutOptions, layout_token_tree
from spanviz.overlay import build_overlay
from spanviz.render import (
    HtmlOptions,
    dumps_overlay,
    render_generated_html,
    render_source_html,
    save_overlay,
)
from spanviz.span_model import token_tree_from_dict

log = logging.getLogger("render_span_overlay")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve token-tree spans into a highlightable overlay.",
    )
    parser.add_argument("--tree", required=True, help="Token-tree JSON payload")
    parser.add_argument(
        "--output", default=None,
        help="Overlay JSON path (default: stdout)",
    )
    parser.add_argument(
        "--html", default=None,
        help="Optional HTML fragment path (source + generated panes)",
    )
    parser.add_argument(
        "--indent", type=int, default=4,
        help="Spaces per indentation level in the generated pane (default: 4)",
    )
    parser.add_argument(
        "--class-prefix", default="n",
        help="CSS class prefix for node ids (default: n)",
    )
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    try:
        tree = token_tree_from_dict(load_json(Path(args.tree)))
        model = build_overlay(tree)
    except OverlayError as exc:
        log.error("Cannot build overlay from %s: %s", args.tree, exc)
        return 1

    log.info(
        "Resolved %d nodes into %d segments",
        len(tree), len(model.segments),
    )

    if args.output:
        save_overlay(model, Path(args.output), pretty=args.pretty)
        log.info("Wrote overlay to %s", args.output)
    else:
        sys.stdout.buffer.write(dumps_overlay(model, pretty=args.pretty))
        sys.stdout.buffer.write(b"\n")

    if args.html:
        html_opts = HtmlOptions(class_prefix=args.class_prefix)
        generated = layout_token_tree(tree, LayoutOptions(indent_unit=" " * args.indent))
        fragment = (
            '<div class="generated">'
            + render_generated_html(generated, html_opts)
            + '</div><div class="source">'
            + render_source_html(model, html_opts)
            + "</div>"
        )
        out = Path(args.html)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(fragment, encoding="utf-8")
        log.info("Wrote HTML fragment to %s", out)

    return 0


if __name__ == "__main__":
    sys.exit(main())
