# wiring_gen/cli.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .constants import DIRECTION_DEFAULT, DIRECTIONS
from .diagrams.registry import RenderConfig, write_diagrams
from .errors import ResolutionErrors
from .io import graph_from_model, load_model
from .organize import organize
from .slice_suite import SliceSuiteConfig, generate_slice_suite
from .slices import check_assignment, slice_context
from .styles import RenderContext
from .validate import RULE_CODES, ValidateConfig, flagged_nodes, split_violations, validate_graph


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wiring-gen",
        description="Render affordance tables as wiring diagrams (Mermaid + text).",
    )
    parser.add_argument(
        "--model",
        type=Path,
        required=True,
        help=(
            "Affordance model: a YAML file, a split model directory, or a "
            "markdown file with UI / Non-UI affordance tables."
        ),
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("wiring"),
        help="Output directory for generated markdown",
    )
    parser.add_argument(
        "--slice",
        type=str,
        default="",
        help="Render the diagrams recolored for this slice id",
    )
    parser.add_argument(
        "--slice-suite",
        action="store_true",
        help=(
            "Generate per-slice outputs under slices/<slice_id>/ and a "
            "slices/index.md page, in addition to the plain diagrams."
        ),
    )
    parser.add_argument(
        "--slice-ids",
        type=str,
        default="",
        help="Comma-separated slice ids to include in --slice-suite mode (default: all).",
    )
    parser.add_argument(
        "--scope",
        type=str,
        default=None,
        help="Only render this place or component container",
    )
    parser.add_argument(
        "--direction",
        type=str,
        choices=DIRECTIONS,
        default=DIRECTION_DEFAULT,
        help="Mermaid flowchart direction",
    )
    parser.add_argument(
        "--flag-violations",
        action="store_true",
        help="Mark nodes with validation warnings in the rendered output.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on validation warnings (unreachable UI, unwired handlers, ...).",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate only; do not write diagrams.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entrypoint."""
    args = _build_parser().parse_args(argv)

    try:
        model = load_model(args.model)
        graph, assignment = graph_from_model(model)
        layout = organize(graph)
    except ResolutionErrors as exc:
        for err in exc.errors:
            print(f"error: {err}", file=sys.stderr)
        raise SystemExit(2)
    except (ValueError, TypeError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2)

    escalate = set(RULE_CODES) if args.strict else set()
    violations = validate_graph(graph, ValidateConfig(escalate=escalate))
    errors, warnings = split_violations(violations)
    warnings += check_assignment(graph, assignment)
    for warning in warnings:
        print(f"warning: {warning}", file=sys.stderr)

    if errors:
        for error in errors:
            print(f"error: {error}", file=sys.stderr)
        raise SystemExit(2)

    if args.check:
        return

    flagged = flagged_nodes(violations) if args.flag_violations else frozenset()
    cfg = RenderConfig(direction=args.direction, scope=args.scope)
    out_dir: Path = args.out_dir

    try:
        if args.slice:
            ctx = slice_context(graph, assignment, args.slice, flagged=flagged)
        else:
            ctx = RenderContext(flagged=flagged)
        write_diagrams(graph, layout, ctx, cfg, out_dir)

        if args.slice_suite:
            slice_ids = None
            if args.slice_ids.strip():
                slice_ids = tuple(s.strip() for s in args.slice_ids.split(",") if s.strip())
            generate_slice_suite(
                graph,
                assignment,
                out_dir,
                cfg=SliceSuiteConfig(render=cfg, slice_ids=slice_ids, flagged=flagged),
                layout=layout,
            )
    except KeyError as exc:
        print(f"error: {exc.args[0]}", file=sys.stderr)
        raise SystemExit(2)


if __name__ == "__main__":
    main()
