# wiring_gen/slices.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from .ascii_layout import render_ascii
from .constants import DIRECTION_DEFAULT, STATUS_BUILT, STATUS_FUTURE, STATUS_THIS_SLICE
from .mermaid_emit import emit_mermaid
from .model import AffordanceGraph, Edge
from .organize import Layout
from .styles import RenderContext

Format = Literal["mermaid", "ascii"]


@dataclass(frozen=True)
class Slice:
    id: str
    name: str = ""
    node_ids: frozenset[str] = frozenset()
    edge_ids: frozenset[str] = frozenset()

    @property
    def title(self) -> str:
        if self.name and self.name != self.id:
            return f"{self.id}: {self.name}"
        return self.id


@dataclass(frozen=True)
class SliceAssignment:
    """Ordered slices. Metadata only: the graph is never touched."""

    slices: tuple[Slice, ...] = ()

    def index_of(self, slice_id: str) -> int:
        for i, s in enumerate(self.slices):
            if s.id == slice_id:
                return i
        raise KeyError(f"unknown slice {slice_id!r}")

    def get(self, slice_id: str) -> Slice:
        return self.slices[self.index_of(slice_id)]

    def node_slice(self, node_id: str) -> Optional[int]:
        for i, s in enumerate(self.slices):
            if node_id in s.node_ids:
                return i
        return None

    def edge_slice(self, edge: Edge, *, target_is_node: bool = True) -> Optional[int]:
        for i, s in enumerate(self.slices):
            if edge.id in s.edge_ids:
                return i
        src = self.node_slice(edge.source)
        # Navigation edges end at a place, which has no slice of its own.
        dst = self.node_slice(edge.target) if target_is_node else src
        if src is None or dst is None:
            return None
        return max(src, dst)


def _status(index: Optional[int], target: int) -> str:
    if index is None or index > target:
        return STATUS_FUTURE
    if index == target:
        return STATUS_THIS_SLICE
    return STATUS_BUILT


def slice_statuses(
    graph: AffordanceGraph, assignment: SliceAssignment, target: str
) -> dict[str, str]:
    """Three-way partition of every node for the target slice."""
    t = assignment.index_of(target)
    return {n.id: _status(assignment.node_slice(n.id), t) for n in graph.nodes}


def edge_statuses(
    graph: AffordanceGraph, assignment: SliceAssignment, target: str
) -> dict[str, str]:
    t = assignment.index_of(target)
    return {
        e.id: _status(assignment.edge_slice(e, target_is_node=e.target in graph.node_index), t)
        for e in graph.edges
    }


def check_assignment(graph: AffordanceGraph, assignment: SliceAssignment) -> list[str]:
    """Warnings for slice entries that name ids the graph does not have."""
    edge_ids = {e.id for e in graph.edges}
    warnings: list[str] = []
    seen: set[str] = set()
    for s in assignment.slices:
        if s.id in seen:
            warnings.append(f"duplicate slice id {s.id!r}")
        seen.add(s.id)
        for node_id in sorted(s.node_ids - set(graph.node_index)):
            warnings.append(f"slice {s.id!r} lists unknown node {node_id!r}")
        for edge_id in sorted(s.edge_ids - edge_ids):
            warnings.append(f"slice {s.id!r} lists unknown edge {edge_id!r}")
    return warnings


def slice_context(
    graph: AffordanceGraph,
    assignment: SliceAssignment,
    target: str,
    *,
    flagged: frozenset[str] = frozenset(),
) -> RenderContext:
    return RenderContext(
        mode="slice",
        statuses=slice_statuses(graph, assignment, target),
        flagged=flagged,
        title=f"Slice {assignment.get(target).title}",
        edge_statuses=edge_statuses(graph, assignment, target),
    )


def project(
    graph: AffordanceGraph,
    assignment: SliceAssignment,
    target: str,
    *,
    fmt: Format = "mermaid",
    layout: Optional[Layout] = None,
    flagged: frozenset[str] = frozenset(),
    direction: str = DIRECTION_DEFAULT,
) -> str:
    """Render the full graph with per-node slice styling for `target`."""
    context = slice_context(graph, assignment, target, flagged=flagged)
    if fmt == "ascii":
        return render_ascii(graph, layout=layout, context=context)
    if fmt == "mermaid":
        return emit_mermaid(graph, layout=layout, context=context, direction=direction)
    raise ValueError(f"unknown format {fmt!r}")
