# wiring_gen/organize.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional, Sequence

from .constants import CONTAINER_COMPONENT, CONTAINER_PLACE, REFERS_TO, WIRES_OUT
from .errors import ResolutionErrors, UnresolvedComponentError, WiringError
from .model import AffordanceGraph


@dataclass(frozen=True)
class Container:
    id: str
    name: str
    kind: str
    node_ids: tuple[str, ...]
    children: tuple["Container", ...] = ()
    declared: bool = True

    @property
    def title(self) -> str:
        prefix = "Place" if self.kind == CONTAINER_PLACE else "Component"
        if not self.declared and self.name:
            return f"{prefix} {self.name}"
        if self.name and self.name != self.id:
            return f"{prefix} {self.id}: {self.name}"
        return f"{prefix} {self.id}"


@dataclass(frozen=True)
class Layout:
    """Ordered containers plus the traversal facts the renderers share."""

    containers: tuple[Container, ...]
    references: dict[str, str] = field(default_factory=dict, hash=False)
    tree_parent: dict[str, Optional[str]] = field(default_factory=dict, hash=False)

    def walk(self) -> Iterator[tuple[Container, int]]:
        """Depth-first (container, depth) pairs in render order."""

        def visit(c: Container, depth: int) -> Iterator[tuple[Container, int]]:
            yield c, depth
            for child in c.children:
                yield from visit(child, depth + 1)

        for c in self.containers:
            yield from visit(c, 0)

    def container_of(self, node_id: str) -> Optional[Container]:
        for c, _ in self.walk():
            if node_id in c.node_ids:
                return c
        return None

    def find(self, container_id: str) -> Container:
        for c, _ in self.walk():
            if c.id == container_id:
                return c
        raise KeyError(f"unknown container {container_id!r}")

    def node_order(self) -> list[str]:
        """Global first-visit order: containers in render order, nodes in traversal order."""
        out: list[str] = []
        for c, _ in self.walk():
            out.extend(c.node_ids)
        return out

    def scope(self, container_id: str) -> "Layout":
        container = self.find(container_id)
        return Layout((container,), self.references, self.tree_parent)

    def is_ancestor(self, ancestor: str, node_id: str) -> bool:
        """True when `ancestor` lies on the traversal path that placed `node_id`."""
        current = self.tree_parent.get(node_id)
        while current is not None:
            if current == ancestor:
                return True
            current = self.tree_parent.get(current)
        return False


def _dfs(
    roots: Iterable[str], children: Callable[[str], Sequence[str]]
) -> tuple[list[str], dict[str, Optional[str]]]:
    # Iterative so long chains and cycles never hit the recursion limit.
    order: list[str] = []
    parent: dict[str, Optional[str]] = {}
    for root in roots:
        if root in parent:
            continue
        parent[root] = None
        order.append(root)
        stack = [(root, iter(children(root)))]
        while stack:
            node, it = stack[-1]
            for child in it:
                if child not in parent:
                    parent[child] = node
                    order.append(child)
                    stack.append((child, iter(children(child))))
                    break
            else:
                stack.pop()
    return order, parent


def container_order(
    graph: AffordanceGraph,
    node_ids: Sequence[str],
    entry: Sequence[str] = (),
) -> tuple[list[str], dict[str, Optional[str]]]:
    """Order a container's nodes by first appearance in a `Wires Out` traversal.

    Roots are the declared entry nodes, else the members with no inbound
    `Wires Out` from inside the container; every remaining member follows as
    a root in declaration order, which also covers purely cyclic containers.
    """
    members = set(node_ids)

    def children(node_id: str) -> list[str]:
        return [
            e.target
            for e in graph.outgoing(node_id, WIRES_OUT)
            if e.target in members and e.target != node_id
        ]

    inbound = {
        e.target
        for e in graph.edges_of_kind(WIRES_OUT)
        if e.source in members and e.target in members and e.source != e.target
    }
    roots = list(entry) or [n for n in node_ids if n not in inbound]
    return _dfs([*roots, *node_ids], children)


def organize(graph: AffordanceGraph) -> Layout:
    """Group nodes into Place / Component containers and resolve references."""
    errors: list[WiringError] = []
    references: dict[str, str] = {}
    for node in graph.nodes:
        if not node.is_reference:
            continue
        target = next(
            (e.target for e in graph.outgoing(node.id, REFERS_TO)),
            None,
        )
        if target is None or target not in graph.component_index:
            errors.append(UnresolvedComponentError(node.id, node.refers_to or ""))
            continue
        references[node.id] = target
    if errors:
        raise ResolutionErrors(errors)

    tree_parent: dict[str, Optional[str]] = {}

    def ordered(node_ids: Sequence[str], entry: Sequence[str] = ()) -> tuple[str, ...]:
        order, parent = container_order(graph, node_ids, entry)
        tree_parent.update(parent)
        return tuple(order)

    def component_box(comp_id: str) -> Container:
        comp = graph.component_index[comp_id]
        return Container(
            comp.id,
            comp.name,
            CONTAINER_COMPONENT,
            ordered(comp.node_ids),
            declared=comp.declared,
        )

    place_ids = {p.id for p in graph.places}
    containers: list[Container] = []
    for place in graph.places:
        nested = tuple(
            component_box(c.id) for c in graph.components if c.place == place.id
        )
        containers.append(
            Container(
                place.id,
                place.name,
                CONTAINER_PLACE,
                ordered(place.node_ids, place.entry),
                nested,
                declared=place.declared,
            )
        )
    for comp in graph.components:
        if comp.place not in place_ids:
            containers.append(component_box(comp.id))

    layout = Layout(tuple(containers), references, tree_parent)

    placed = set(layout.node_order())
    missing = [n.id for n in graph.nodes if n.id not in placed]
    if missing:
        raise ValueError(f"nodes without a container: {', '.join(missing)}")
    return layout
