# wiring_gen/model.py
"""Frozen affordance graph: nodes, edges, places and component definitions.

The graph is built once per parse pass by :func:`build_graph` and never
mutated afterwards. Derived views (the wires-in index, alias sets, container
lookups) are computed lazily and cached on the frozen instance.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Iterable, Optional, Protocol, Sequence

from .constants import (
    ALIAS_BASE_RE,
    CONTAINER_COMPONENT,
    CONTAINER_PLACE,
    EDGE_ARROWS,
    KIND_UI,
    REFERS_TO,
    RETURNS_TO,
    WIRES_OUT,
)
from .errors import (
    DuplicateIdError,
    ResolutionErrors,
    UnknownReferenceError,
    UnresolvedComponentError,
    WiringError,
)
from .mermaid_fmt import mm_unique_id


@dataclass(frozen=True)
class Node:
    id: str
    kind: str
    component: str
    label: str
    control: str
    is_data_store: bool = False
    is_terminal: bool = False
    is_void: bool = False
    place: Optional[str] = None
    table: str = ""
    row: int = 0
    order: int = 0
    refers_to: Optional[str] = None

    @property
    def is_ui(self) -> bool:
        return self.kind == KIND_UI

    @property
    def is_reference(self) -> bool:
        return self.refers_to is not None

    @property
    def alias_base(self) -> str:
        m = ALIAS_BASE_RE.match(self.id)
        return m.group(1) if m else self.id

    @property
    def where(self) -> str:
        return f"{self.table} table row {self.row}"


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    kind: str
    label: str = ""

    @property
    def id(self) -> str:
        return f"{self.source}{EDGE_ARROWS[self.kind]}{self.target}"


@dataclass(frozen=True)
class PlaceDecl:
    id: str
    name: str
    entry: tuple[str, ...] = ()


@dataclass(frozen=True)
class ComponentDecl:
    id: str
    name: str
    place: Optional[str] = None


@dataclass(frozen=True)
class Place:
    id: str
    name: str
    node_ids: tuple[str, ...] = ()
    entry: tuple[str, ...] = ()
    declared: bool = True

    kind = CONTAINER_PLACE


@dataclass(frozen=True)
class Component:
    id: str
    name: str
    node_ids: tuple[str, ...] = ()
    place: Optional[str] = None
    declared: bool = True

    kind = CONTAINER_COMPONENT


@dataclass(frozen=True)
class AffordanceGraph:
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]
    places: tuple[Place, ...] = ()
    components: tuple[Component, ...] = ()

    @cached_property
    def node_index(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    @cached_property
    def place_index(self) -> dict[str, Place]:
        return {p.id: p for p in self.places}

    @cached_property
    def component_index(self) -> dict[str, Component]:
        return {c.id: c for c in self.components}

    @cached_property
    def _container_by_node(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for container in (*self.places, *self.components):
            for node_id in container.node_ids:
                out.setdefault(node_id, container.id)
        return out

    @cached_property
    def _wires_in(self) -> dict[str, tuple[str, ...]]:
        from .reverse_index import build_reverse_index

        return build_reverse_index(self)

    def node(self, node_id: str) -> Node:
        return self.node_index[node_id]

    def is_place(self, target_id: str) -> bool:
        return target_id in self.place_index

    def container_of(self, node_id: str) -> Optional[str]:
        return self._container_by_node.get(node_id)

    def target_order(self, target_id: str) -> tuple[int, int]:
        """Tie-break key: first-declared row for nodes, then places in declaration order."""
        node = self.node_index.get(target_id)
        if node is not None:
            return (0, node.order)
        for i, place in enumerate(self.places):
            if place.id == target_id:
                return (1, i)
        for i, comp in enumerate(self.components):
            if comp.id == target_id:
                return (2, i)
        return (3, 0)

    def outgoing(self, node_id: str, kind: Optional[str] = None) -> list[Edge]:
        edges = [
            e
            for e in self.edges
            if e.source == node_id and (kind is None or e.kind == kind)
        ]
        return sorted(edges, key=lambda e: self.target_order(e.target))

    def incoming(self, node_id: str, kind: Optional[str] = None) -> list[Edge]:
        return [
            e
            for e in self.edges
            if e.target == node_id and (kind is None or e.kind == kind)
        ]

    def wires_in(self, node_id: str) -> tuple[str, ...]:
        """Sources whose `Wires Out` reaches this node (derived, never authored)."""
        if node_id not in self.node_index:
            raise KeyError(node_id)
        return self._wires_in.get(node_id, ())

    def aliases_of(self, node_id: str) -> tuple[str, ...]:
        base = self.node(node_id).alias_base
        return tuple(
            n.id for n in self.nodes if n.alias_base == base and n.id != node_id
        )

    def edges_of_kind(self, kind: str) -> list[Edge]:
        return [e for e in self.edges if e.kind == kind]


def _slug(text: str) -> str:
    s = re.sub(r"[^A-Za-z0-9_]+", "_", text).strip("_")
    return s or "unnamed"


@dataclass
class _ContainerDraft:
    id: str
    name: str
    declared: bool
    node_ids: list[str] = field(default_factory=list)
    place: Optional[str] = None
    entry: tuple[str, ...] = ()


def build_graph(
    parsed: "ParsedLike",
    *,
    places: Sequence[PlaceDecl] = (),
    components: Sequence[ComponentDecl] = (),
) -> AffordanceGraph:
    """Resolve parsed records into a frozen graph.

    Every unknown edge target and every reference to a missing component is
    collected; they are raised together as :class:`ResolutionErrors`.
    """
    nodes: list[Node] = list(parsed.nodes)
    node_ids = {n.id for n in nodes}
    node_where = {n.id: n.where for n in nodes}

    seen_decl: dict[str, str] = {}
    for decl, what in [(p, "place") for p in places] + [
        (c, "component") for c in components
    ]:
        where = f"{what} declaration {decl.name!r}"
        if decl.id in node_ids:
            raise DuplicateIdError(decl.id, node_where[decl.id], where)
        if decl.id in seen_decl:
            raise DuplicateIdError(decl.id, seen_decl[decl.id], where)
        seen_decl[decl.id] = where

    used_ids: set[str] = set(node_ids) | set(seen_decl)
    errors: list[WiringError] = []

    place_drafts: dict[str, _ContainerDraft] = {}
    place_lookup: dict[str, str] = {}
    for p in places:
        place_drafts[p.id] = _ContainerDraft(p.id, p.name, True, entry=tuple(p.entry))
        place_lookup.setdefault(p.id, p.id)
        place_lookup.setdefault(p.name, p.id)

    comp_drafts: dict[str, _ContainerDraft] = {}
    comp_lookup: dict[str, str] = {}
    for c in components:
        comp_drafts[c.id] = _ContainerDraft(c.id, c.name, True, place=c.place)
        comp_lookup.setdefault(c.id, c.id)
        comp_lookup.setdefault(c.name, c.id)

    # Reference targets become component definitions when rows own them.
    owners = {n.component for n in nodes if not n.is_reference and n.component}
    for n in nodes:
        if not n.is_reference or n.refers_to in comp_lookup:
            continue
        name = n.refers_to or ""
        if name in owners:
            cid = mm_unique_id(f"cmp_{_slug(name)}", used_ids)
            comp_drafts[cid] = _ContainerDraft(cid, name, False)
            comp_lookup[name] = cid

    def place_for(name: str) -> str:
        if name in place_lookup:
            return place_lookup[name]
        pid = mm_unique_id(f"place_{_slug(name)}", used_ids)
        place_drafts[pid] = _ContainerDraft(pid, name, False)
        place_lookup[name] = pid
        return pid

    for n in nodes:
        cid = None if n.is_reference else comp_lookup.get(n.component)
        if cid is not None:
            draft = comp_drafts[cid]
            draft.node_ids.append(n.id)
            if draft.place is None and n.place:
                draft.place = place_for(n.place)
            continue
        place_drafts[place_for(n.place or n.component or "Unplaced")].node_ids.append(
            n.id
        )

    for draft in comp_drafts.values():
        if draft.place is not None and draft.place not in place_drafts:
            draft.place = place_for(draft.place)

    for draft in place_drafts.values():
        for entry_id in draft.entry:
            if entry_id not in draft.node_ids:
                errors.append(UnknownReferenceError(draft.id, entry_id))

    edges: list[Edge] = []
    for e in parsed.edges:
        if e.target in node_ids:
            edges.append(e)
        elif e.kind == WIRES_OUT and e.target in place_drafts:
            edges.append(e)
        else:
            errors.append(UnknownReferenceError(e.source, e.target))

    for n in nodes:
        if not n.is_reference:
            continue
        cid = comp_lookup.get(n.refers_to or "")
        if cid is None:
            errors.append(UnresolvedComponentError(n.id, n.refers_to or ""))
            continue
        edges.append(Edge(n.id, cid, REFERS_TO))

    if errors:
        raise ResolutionErrors(errors)

    return AffordanceGraph(
        nodes=tuple(nodes),
        edges=tuple(_edge_order(edges, nodes)),
        places=tuple(
            Place(d.id, d.name, tuple(d.node_ids), d.entry, d.declared)
            for d in place_drafts.values()
        ),
        components=tuple(
            Component(d.id, d.name, tuple(d.node_ids), d.place, d.declared)
            for d in comp_drafts.values()
        ),
    )


def _edge_order(edges: Iterable[Edge], nodes: Sequence[Node]) -> list[Edge]:
    """Stable order: by kind, then source declaration order (authored order kept)."""
    order = {n.id: n.order for n in nodes}
    kind_rank = {WIRES_OUT: 0, RETURNS_TO: 1, REFERS_TO: 2}
    return sorted(edges, key=lambda e: (kind_rank[e.kind], order.get(e.source, 0)))


class ParsedLike(Protocol):
    """Structural type accepted by :func:`build_graph` (see table_parser.ParsedTables)."""

    nodes: Sequence[Node]
    edges: Sequence[Edge]
