from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .constants import STATUS_THIS_SLICE
from .diagrams.registry import RenderConfig, write_diagrams
from .model import AffordanceGraph
from .organize import Layout, organize
from .slices import Slice, SliceAssignment, slice_context
from .writer import write_text_md


@dataclass(frozen=True)
class SliceSuiteConfig:
    render: RenderConfig = RenderConfig()
    slice_ids: Optional[tuple[str, ...]] = None
    flagged: frozenset[str] = frozenset()


def _preflight_suite(slices: tuple[Slice, ...]) -> None:
    """Fail fast on conditions that would cause destructive overwrites."""

    seen: dict[str, int] = {}
    for i, s in enumerate(slices):
        if s.id in seen:
            raise ValueError(
                f"duplicate slice id {s.id!r} (slices[{seen[s.id]}] and slices[{i}])"
            )
        seen[s.id] = i

        # Guard: slice ids are used as directory names; disallow path
        # separators and path traversal segments.
        if "/" in s.id or "\\" in s.id or ".." in s.id:
            raise ValueError(f"slice id {s.id!r} is not safe for use as a directory name")


def _md_table_cell(text: str) -> str:
    """Escape a string for use in a Markdown table cell."""
    s = (text or "").replace("\r", " ").replace("\n", " ").strip()
    # Escape table separators.
    s = s.replace("|", "\\|")
    return s


def generate_slice_suite(
    graph: AffordanceGraph,
    assignment: SliceAssignment,
    out_dir: Path,
    *,
    cfg: SliceSuiteConfig = SliceSuiteConfig(),
    layout: Optional[Layout] = None,
    suite_dirname: str = "slices",
    write_index: bool = True,
) -> list[Path]:
    """Generate per-slice diagram outputs under out_dir/slices/<id>/.

    Slices keep their declared order (it is the delivery order). Outputs per
    slice are the registered diagrams (Mermaid + text) recolored for that
    slice, plus slices/index.md linking them.
    """
    _preflight_suite(assignment.slices)
    layout = layout or organize(graph)

    wanted = set(cfg.slice_ids) if cfg.slice_ids else None
    for slice_id in sorted(wanted or ()):
        assignment.index_of(slice_id)

    written: list[Path] = []
    rows: list[tuple[str, str, int, int]] = []
    for s in assignment.slices:
        if wanted is not None and s.id not in wanted:
            continue

        ctx = slice_context(graph, assignment, s.id, flagged=cfg.flagged)
        written += write_diagrams(
            graph,
            layout,
            ctx,
            cfg.render,
            out_dir / suite_dirname / s.id,
            title_suffix=f" — slice {s.title}",
        )

        node_counts = Counter(ctx.statuses.values())
        edge_counts = Counter(ctx.edge_statuses.values())
        rows.append(
            (s.id, s.name, node_counts[STATUS_THIS_SLICE], edge_counts[STATUS_THIS_SLICE])
        )

    if write_index:
        index_path = out_dir / suite_dirname / "index.md"

        lines: list[str] = []
        lines.append(
            "This page lists slice-scoped wiring diagrams in delivery order."
        )
        lines.append("")
        lines.append("| slice_id | name | new affordances | new wires | diagram | text |")
        lines.append("|---|---|---|---|---|---|")
        for slice_id, name, n_nodes, n_edges in rows:
            lines.append(
                "| "
                + " | ".join(
                    [
                        _md_table_cell(slice_id),
                        _md_table_cell(name),
                        str(n_nodes),
                        str(n_edges),
                        f"[wiring]({slice_id}/wiring.md)",
                        f"[wiring_ascii]({slice_id}/wiring_ascii.md)",
                    ]
                )
                + " |"
            )

        lines.append("")
        lines.append("Notes:")
        lines.append(
            "- Each diagram shows the full graph; earlier slices are marked built, "
            "later ones future."
        )

        write_text_md(index_path, title="Slices", body_md="\n".join(lines))
        written.append(index_path)

    return written
