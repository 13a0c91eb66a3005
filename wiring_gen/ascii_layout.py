# wiring_gen/ascii_layout.py
"""Box-and-arrow text rendering of an organized affordance graph.

Each Place is a bordered box holding its node entries and nested Component
boxes. Every node is written exactly once; connectors are written under the
entries they belong to:

  ──► N4          wires out along the traversal that placed N4
  ──► #N4         wires out to a node that is already placed
  ──► ↑N1 (cycle) wires out to an ancestor on the traversal path
  ◄── #N7         N7 also wires into this node
  ◄─ ─ ─ N4       N4 returns data to this node
  ──► [P2: name]  navigation straight to another place's box

In slice mode each connector also carries the delivery status of its edge.
"""
from __future__ import annotations

from typing import Optional

from .constants import RETURNS_TO, WIRES_OUT
from .model import AffordanceGraph, Edge, Node
from .organize import Container, Layout, organize
from .styles import DEFAULT_CONTEXT, RenderContext, ascii_edge_marker, ascii_marker

SOLID = "──►"
BACK_REF = "◄──"
DASHED = "◄─ ─ ─"
CYCLE = "↑"
UI_PREFIX = "**UI "
CONNECTOR_INDENT = "    "

LEGEND = (
    f"{SOLID} wires out   {DASHED} returns to   "
    f"{BACK_REF} #id also wired from   {CYCLE}id cycle"
)


def _entry_brackets(node: Node) -> tuple[str, str]:
    if node.is_data_store:
        return "[(", ")]"
    if node.is_reference:
        return "[[", "]]"
    return "[", "]"


def _entry_line(graph: AffordanceGraph, layout: Layout, node: Node, context: RenderContext) -> str:
    opening, closing = _entry_brackets(node)
    text = f"{opening}{node.id}{closing} {UI_PREFIX if node.is_ui else ''}{node.label}"
    if node.control:
        text += f"  <{node.control}>"
    if node.is_reference:
        comp_id = layout.references.get(node.id)
        comp = graph.component_index.get(comp_id) if comp_id else None
        text += f"  ⇢ Component {comp.name if comp else node.refers_to}"
    marker = ascii_marker(node, context)
    if marker:
        text += f"  {marker}"
    return text


def _marked(text: str, edge: Edge, context: RenderContext) -> str:
    marker = ascii_edge_marker(edge, context)
    return f"{text}  {marker}" if marker else text


def _with_label(text: str, edge: Edge, context: RenderContext) -> str:
    if edge.label:
        text = f"{text} {edge.label}"
    return _marked(text, edge, context)


class _Placement:
    """Tracks the traversal edge that placed each node so fan-in is annotated, not redrawn."""

    def __init__(self, graph: AffordanceGraph, layout: Layout) -> None:
        self.placing: dict[str, Edge] = {}
        for node_id in layout.node_order():
            for edge in graph.outgoing(node_id, WIRES_OUT):
                if layout.tree_parent.get(edge.target) == node_id:
                    self.placing.setdefault(edge.target, edge)

    def is_placing(self, edge: Edge) -> bool:
        return self.placing.get(edge.target) is edge


def _outbound_lines(
    graph: AffordanceGraph,
    layout: Layout,
    node: Node,
    placement: _Placement,
    context: RenderContext,
) -> list[str]:
    lines: list[str] = []
    here = layout.container_of(node.id)
    for edge in graph.outgoing(node.id, WIRES_OUT):
        if graph.is_place(edge.target):
            place = graph.place_index[edge.target]
            title = place.id if place.name in ("", place.id) else f"{place.id}: {place.name}"
            lines.append(_with_label(f"{SOLID} [{title}]", edge, context))
            continue

        if edge.target == node.id or layout.is_ancestor(edge.target, node.id):
            text = f"{SOLID} {CYCLE}{edge.target} (cycle)"
        elif placement.is_placing(edge):
            text = f"{SOLID} {edge.target}"
        else:
            text = f"{SOLID} #{edge.target}"

        there = layout.container_of(edge.target)
        if there is not None and there is not here:
            text += f" (in {there.title})"
        lines.append(_with_label(text, edge, context))
    return lines


def _inbound_lines(
    graph: AffordanceGraph, node: Node, placement: _Placement, context: RenderContext
) -> list[str]:
    lines: list[str] = []
    for edge in graph.incoming(node.id, WIRES_OUT):
        if not placement.is_placing(edge):
            lines.append(_marked(f"{BACK_REF} #{edge.source}", edge, context))
    for edge in graph.incoming(node.id, RETURNS_TO):
        lines.append(_with_label(f"{DASHED} {edge.source}", edge, context))
    return lines


def box(title: str, body: list[str]) -> list[str]:
    """Draw a bordered box with the title set into its top edge."""
    content = body or ["(empty)"]
    width = max(max(len(line) for line in content) + 2, len(title) + 4)
    top = "┌─ " + title + " " + "─" * (width - len(title) - 3) + "┐"
    middle = ["│ " + line.ljust(width - 2) + " │" for line in content]
    bottom = "└" + "─" * width + "┘"
    return [top, *middle, bottom]


def _container_lines(
    graph: AffordanceGraph,
    layout: Layout,
    container: Container,
    placement: _Placement,
    context: RenderContext,
) -> list[str]:
    body: list[str] = []
    for node_id in container.node_ids:
        node = graph.node(node_id)
        body.append(_entry_line(graph, layout, node, context))
        connectors = _inbound_lines(graph, node, placement, context) + _outbound_lines(
            graph, layout, node, placement, context
        )
        body.extend(CONNECTOR_INDENT + line for line in connectors)
    for child in container.children:
        body.extend(_container_lines(graph, layout, child, placement, context))
    return box(container.title, body)


def render_ascii(
    graph: AffordanceGraph,
    *,
    layout: Optional[Layout] = None,
    context: RenderContext = DEFAULT_CONTEXT,
    scope: Optional[str] = None,
    legend: bool = True,
) -> str:
    layout = layout or organize(graph)
    if scope is not None:
        layout = layout.scope(scope)

    placement = _Placement(graph, layout)

    blocks: list[str] = []
    if context.title:
        blocks.append(context.title)
    for container in layout.containers:
        blocks.append("\n".join(_container_lines(graph, layout, container, placement, context)))
    if legend:
        blocks.append(LEGEND)
    return "\n\n".join(blocks) + "\n"
