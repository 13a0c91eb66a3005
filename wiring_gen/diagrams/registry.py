from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Optional

from ..ascii_layout import render_ascii
from ..constants import DIRECTION_DEFAULT
from ..mermaid_emit import emit_mermaid
from ..model import AffordanceGraph
from ..organize import Layout
from ..styles import RenderContext
from ..writer import write_ascii_md, write_md

RenderFn = Callable[[AffordanceGraph, Layout, RenderContext, "RenderConfig"], str]


@dataclass(frozen=True)
class RenderConfig:
    direction: str = DIRECTION_DEFAULT
    scope: Optional[str] = None


@dataclass(frozen=True)
class DiagramSpec:
    diagram_id: str
    title: str
    filename: str
    render: RenderFn
    fmt: Literal["mermaid", "ascii"] = "mermaid"


def _render_wiring(
    graph: AffordanceGraph, layout: Layout, ctx: RenderContext, cfg: RenderConfig
) -> str:
    return emit_mermaid(
        graph, layout=layout, context=ctx, scope=cfg.scope, direction=cfg.direction
    )


def _render_wiring_ascii(
    graph: AffordanceGraph, layout: Layout, ctx: RenderContext, cfg: RenderConfig
) -> str:
    return render_ascii(graph, layout=layout, context=ctx, scope=cfg.scope)


DIAGRAMS: list[DiagramSpec] = [
    DiagramSpec(
        diagram_id="wiring",
        title="Affordance wiring",
        filename="wiring.md",
        render=_render_wiring,
    ),
    DiagramSpec(
        diagram_id="wiring_ascii",
        title="Affordance wiring (text)",
        filename="wiring_ascii.md",
        render=_render_wiring_ascii,
        fmt="ascii",
    ),
]


def write_diagrams(
    graph: AffordanceGraph,
    layout: Layout,
    ctx: RenderContext,
    cfg: RenderConfig,
    out_dir: Path,
    *,
    title_suffix: str = "",
) -> list[Path]:
    """Render every registered diagram into out_dir; returns the written paths."""
    written: list[Path] = []
    for spec in DIAGRAMS:
        code = spec.render(graph, layout, ctx, cfg)
        path = out_dir / spec.filename
        title = f"{spec.title}{title_suffix}"
        if spec.fmt == "ascii":
            write_ascii_md(path, title, code)
        else:
            write_md(path, title, code)
        written.append(path)
    return written
