# wiring_gen/styles.py
"""Style resolution: (node, render context) -> class name.

The graph carries no styling. Renderers swap contexts instead of touching
node state: the default context colors by affordance kind, a slice context
colors by delivery status.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Mapping

from .constants import STATUS_BUILT, STATUS_FUTURE, STATUS_THIS_SLICE
from .model import Edge, Node

Mode = Literal["kind", "slice"]

CLASS_UI = "ui"
CLASS_NON_UI = "nonui"
CLASS_COMPONENT = "component"
CLASS_THIS_SLICE = "thisSlice"
CLASS_BUILT = "built"
CLASS_FUTURE = "future"
CLASS_VIOLATION = "violation"

KIND_CLASS_DEFS: tuple[tuple[str, str], ...] = (
    (CLASS_UI, "fill:#ffb6c1,stroke:#d87093,color:#000"),
    (CLASS_NON_UI, "fill:#d3d3d3,stroke:#808080,color:#000"),
    (CLASS_COMPONENT, "fill:#ffffff,stroke:#333,stroke-dasharray:5 5,color:#000"),
)

SLICE_CLASS_DEFS: tuple[tuple[str, str], ...] = (
    (CLASS_THIS_SLICE, "fill:#90ee90,stroke:#228b22,color:#000"),
    (CLASS_BUILT, "fill:#add8e6,stroke:#4682b4,color:#000"),
    (CLASS_FUTURE, "fill:#f5f5f5,stroke:#bbbbbb,color:#999"),
)

VIOLATION_CLASS_DEF: tuple[str, str] = (
    CLASS_VIOLATION,
    "stroke:#d00000,stroke-width:3px,stroke-dasharray:4 2",
)

STATUS_CLASSES: dict[str, str] = {
    STATUS_THIS_SLICE: CLASS_THIS_SLICE,
    STATUS_BUILT: CLASS_BUILT,
    STATUS_FUTURE: CLASS_FUTURE,
}

# ASCII markers for slice statuses.
STATUS_MARKERS: dict[str, str] = {
    STATUS_THIS_SLICE: "[this slice]",
    STATUS_BUILT: "[built]",
    STATUS_FUTURE: "[future]",
}


@dataclass(frozen=True)
class RenderContext:
    mode: Mode = "kind"
    statuses: Mapping[str, str] = field(default_factory=dict, hash=False)
    flagged: frozenset[str] = frozenset()
    title: str = ""
    edge_statuses: Mapping[str, str] = field(default_factory=dict, hash=False)

    def status_of(self, node_id: str) -> str:
        return self.statuses.get(node_id, STATUS_FUTURE)

    def edge_status_of(self, edge_id: str) -> str:
        return self.edge_statuses.get(edge_id, STATUS_FUTURE)


DEFAULT_CONTEXT = RenderContext()


def resolve_style(node: Node, context: RenderContext = DEFAULT_CONTEXT) -> str:
    if context.mode == "slice":
        return STATUS_CLASSES[context.status_of(node.id)]
    if node.is_reference:
        return CLASS_COMPONENT
    return CLASS_UI if node.is_ui else CLASS_NON_UI


def class_defs(context: RenderContext = DEFAULT_CONTEXT) -> list[tuple[str, str]]:
    defs = list(SLICE_CLASS_DEFS if context.mode == "slice" else KIND_CLASS_DEFS)
    if context.flagged:
        defs.append(VIOLATION_CLASS_DEF)
    return defs


def ascii_marker(node: Node, context: RenderContext = DEFAULT_CONTEXT) -> str:
    parts: list[str] = []
    if context.mode == "slice":
        parts.append(STATUS_MARKERS[context.status_of(node.id)])
    if node.id in context.flagged:
        parts.append("!")
    return " ".join(parts)


def ascii_edge_marker(edge: Edge, context: RenderContext = DEFAULT_CONTEXT) -> str:
    if context.mode != "slice":
        return ""
    return STATUS_MARKERS[context.edge_status_of(edge.id)]
