# wiring_gen/mermaid_emit.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .constants import (
    DASHED_LINK_STYLE,
    DIRECTION_DEFAULT,
    DIRECTIONS,
    EDGE_ARROWS,
    REFERS_TO,
    RETURNS_TO,
    WIRES_OUT,
)
from .mermaid_fmt import (
    mermaid_block,
    mm_class_apply,
    mm_class_def,
    mm_comment,
    mm_flow_edge,
    mm_flow_node,
    mm_link_style,
    mm_subgraph_close,
    mm_subgraph_open,
)
from .model import AffordanceGraph, Edge, Node
from .organize import Container, Layout, organize
from .styles import CLASS_VIOLATION, DEFAULT_CONTEXT, RenderContext, class_defs, resolve_style


@dataclass(frozen=True)
class LinkPlan:
    """Links in emission order; dashed indices are derived, never hand-kept."""

    solid: tuple[Edge, ...]
    dashed: tuple[Edge, ...]
    refers: tuple[Edge, ...]

    @property
    def links(self) -> tuple[Edge, ...]:
        return self.solid + self.dashed + self.refers

    @property
    def dashed_indices(self) -> list[int]:
        start = len(self.solid)
        return list(range(start, start + len(self.dashed)))


def node_label(node: Node) -> str:
    return f"{node.id}: {node.label}"


def _node_shape(node: Node) -> str:
    if node.is_data_store:
        return "store"
    if node.is_reference:
        return "subroutine"
    return "box"


def plan_links(graph: AffordanceGraph, layout: Layout) -> LinkPlan:
    order = layout.node_order()
    in_scope = set(order)
    containers = {c.id for c, _ in layout.walk()}

    def collect(kind: str, targets: set[str]) -> tuple[Edge, ...]:
        return tuple(
            e
            for node_id in order
            for e in graph.outgoing(node_id, kind)
            if e.target in targets
        )

    return LinkPlan(
        solid=collect(WIRES_OUT, in_scope | containers),
        dashed=collect(RETURNS_TO, in_scope),
        refers=collect(REFERS_TO, containers),
    )


def _emit_container(
    graph: AffordanceGraph, container: Container, indent: int, lines: list[str]
) -> None:
    lines.append(mm_subgraph_open(container.id, container.title, indent=indent))
    for node_id in container.node_ids:
        node = graph.node(node_id)
        lines.append(
            mm_flow_node(node.id, node_label(node), shape=_node_shape(node), indent=indent + 1)
        )
    for child in container.children:
        _emit_container(graph, child, indent + 1, lines)
    lines.append(mm_subgraph_close(indent=indent))


def emit_mermaid(
    graph: AffordanceGraph,
    *,
    layout: Optional[Layout] = None,
    context: RenderContext = DEFAULT_CONTEXT,
    scope: Optional[str] = None,
    direction: str = DIRECTION_DEFAULT,
) -> str:
    """Render the graph as Mermaid flowchart source in a fixed, stable order."""
    if direction not in DIRECTIONS:
        raise ValueError(f"unknown flowchart direction: {direction!r}")

    layout = layout or organize(graph)
    if scope is not None:
        layout = layout.scope(scope)

    lines: list[str] = [f"flowchart {direction}"]
    if context.title:
        lines.append(mm_comment(context.title))

    for container in layout.containers:
        _emit_container(graph, container, 1, lines)

    plan = plan_links(graph, layout)
    for edge in plan.links:
        lines.append(mm_flow_edge(edge.source, edge.target, edge.label, EDGE_ARROWS[edge.kind]))

    if plan.dashed:
        lines.append(mm_link_style(plan.dashed_indices, DASHED_LINK_STYLE))

    order = layout.node_order()
    for class_name, style in class_defs(context):
        lines.append(mm_class_def(class_name, style))
    for class_name, _ in class_defs(context):
        if class_name == CLASS_VIOLATION:
            members = [n for n in order if n in context.flagged]
        else:
            members = [n for n in order if resolve_style(graph.node(n), context) == class_name]
        if members:
            lines.append(mm_class_apply(members, class_name))

    return "\n".join(lines) + "\n"


def emit_mermaid_block(graph: AffordanceGraph, **kwargs) -> str:
    return mermaid_block(emit_mermaid(graph, **kwargs))
