# wiring_gen/mermaid_import.py
"""Read back the flowchart dialect written by mermaid_emit.

Only the constructs the emitter produces are understood: subgraph blocks,
quoted node declarations in the box/store/subroutine shapes, solid, dashed
and thick links (optionally labelled), linkStyle, classDef and class lines.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from .constants import REFERS_TO, RETURNS_TO, WIRES_OUT
from .mermaid_fmt import mm_unescape
from .model import AffordanceGraph

_NODE_RE = re.compile(r'^(\w+)(\[\(|\[\[|\[|\()"(.*)"(\)\]|\]\]|\]|\))$')
_SUBGRAPH_RE = re.compile(r'^subgraph\s+(\w+)(?:\["(.*)"\])?$')
_LINK_RES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^(\w+)\s+-->\|(.*)\|\s+(\w+)$"), WIRES_OUT),
    (re.compile(r"^(\w+)\s+-->\s+(\w+)$"), WIRES_OUT),
    (re.compile(r"^(\w+)\s+-\.\s+(.*?)\s+\.->\s+(\w+)$"), RETURNS_TO),
    (re.compile(r"^(\w+)\s+-\.->\s+(\w+)$"), RETURNS_TO),
    (re.compile(r"^(\w+)\s+==\s+(.*?)\s+==>\s+(\w+)$"), REFERS_TO),
    (re.compile(r"^(\w+)\s+==>\s+(\w+)$"), REFERS_TO),
)
_LINK_STYLE_RE = re.compile(r"^linkStyle\s+([\d,]+)\s+(.*)$")
_CLASS_RE = re.compile(r"^class\s+([\w,]+)\s+(\w+)$")


@dataclass(frozen=True)
class ImportedEdge:
    source: str
    target: str
    kind: str
    label: str = ""


@dataclass
class ImportedGraph:
    direction: str = ""
    nodes: dict[str, str] = field(default_factory=dict)
    node_container: dict[str, Optional[str]] = field(default_factory=dict)
    subgraphs: dict[str, str] = field(default_factory=dict)
    edges: list[ImportedEdge] = field(default_factory=list)
    link_styles: list[tuple[list[int], str]] = field(default_factory=list)
    classes: dict[str, list[str]] = field(default_factory=dict)

    def structure(self) -> tuple[frozenset[str], Counter]:
        return frozenset(self.nodes), Counter(
            (e.source, e.target, e.kind) for e in self.edges
        )

    def edges_of_kind(self, kind: str) -> list[ImportedEdge]:
        return [e for e in self.edges if e.kind == kind]


def structure_of(graph: AffordanceGraph) -> tuple[frozenset[str], Counter]:
    return frozenset(n.id for n in graph.nodes), Counter(
        (e.source, e.target, e.kind) for e in graph.edges
    )


def _edge_label(raw: str) -> str:
    s = raw.strip()
    if len(s) >= 2 and s.startswith('"') and s.endswith('"'):
        s = s[1:-1]
    return mm_unescape(s)


def import_mermaid(text: str) -> ImportedGraph:
    out = ImportedGraph()
    stack: list[str] = []

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("%%") or line.startswith("```"):
            continue

        if line.startswith("flowchart ") or line.startswith("graph "):
            out.direction = line.split()[1]
            continue

        m = _SUBGRAPH_RE.match(line)
        if m:
            out.subgraphs[m.group(1)] = mm_unescape(m.group(2) or m.group(1))
            stack.append(m.group(1))
            continue

        if line == "end":
            if not stack:
                raise ValueError(f"line {lineno}: `end` without an open subgraph")
            stack.pop()
            continue

        if line.startswith("classDef "):
            continue

        m = _CLASS_RE.match(line)
        if m:
            out.classes.setdefault(m.group(2), []).extend(m.group(1).split(","))
            continue

        m = _LINK_STYLE_RE.match(line)
        if m:
            out.link_styles.append(([int(i) for i in m.group(1).split(",")], m.group(2)))
            continue

        m = _NODE_RE.match(line)
        if m:
            node_id, label = m.group(1), mm_unescape(m.group(3))
            prefix = f"{node_id}: "
            out.nodes[node_id] = label[len(prefix):] if label.startswith(prefix) else label
            out.node_container[node_id] = stack[-1] if stack else None
            continue

        for pattern, kind in _LINK_RES:
            m = pattern.match(line)
            if m:
                groups = m.groups()
                label = _edge_label(groups[1]) if len(groups) == 3 else ""
                out.edges.append(ImportedEdge(groups[0], groups[-1], kind, label))
                break
        else:
            raise ValueError(f"line {lineno}: unrecognized Mermaid statement {line!r}")

    if stack:
        raise ValueError(f"unclosed subgraph(s): {', '.join(stack)}")
    return out
