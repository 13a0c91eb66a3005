# wiring_gen/reverse_index.py
"""Derived "wires in" index.

The index is the only supported answer to "what triggers this affordance".
It is rebuilt from the authored `Wires Out` lists every time a graph is
built and is never stored as authored state.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import WIRES_OUT

if TYPE_CHECKING:
    from .model import AffordanceGraph


def build_reverse_index(graph: "AffordanceGraph") -> dict[str, tuple[str, ...]]:
    """Map every node id to the sources whose `Wires Out` reaches it, in edge order."""
    index: dict[str, list[str]] = {n.id: [] for n in graph.nodes}
    for edge in graph.edges:
        if edge.kind != WIRES_OUT or edge.target not in index:
            # Navigation edges target places, not nodes.
            continue
        index[edge.target].append(edge.source)
    return {node_id: tuple(sources) for node_id, sources in index.items()}


def brute_force_wires_in(graph: "AffordanceGraph", node_id: str) -> set[str]:
    """Reference scan: {M : node_id in wiresOut(M)}."""
    return {
        other.id
        for other in graph.nodes
        if any(e.target == node_id for e in graph.outgoing(other.id, WIRES_OUT))
    }
