# wiring_gen/mermaid_fmt.py
from __future__ import annotations

import html
import re
from typing import Iterable

# Mermaid node/subgraph IDs must be alphanumeric/underscore and must not start
# with a digit.
MERMAID_ID_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Node shapes keyed by a short name; each is (open, close).
NODE_SHAPES: dict[str, tuple[str, str]] = {
    "box": ("[", "]"),
    "round": ("(", ")"),
    "store": ("[(", ")]"),
    "subroutine": ("[[", "]]"),
}

_ENTITIES: tuple[tuple[str, str], ...] = (
    ("#lt;", "<"),
    ("#gt;", ">"),
    ("#quot;", '"'),
    ("#124;", "|"),
    ("#amp;", "&"),
)


def mermaid_block(code: str) -> str:
    """Wrap Mermaid source in a Markdown Mermaid code fence."""
    return "```mermaid\n" + code.rstrip() + "\n```\n"


def mm_text(text: str) -> str:
    """Escape text for Mermaid labels."""
    normalized = re.sub(r"\s+", " ", html.unescape(str(text))).strip()
    out = (
        normalized.replace("&", "#amp;")
        .replace("<", "#lt;")
        .replace(">", "#gt;")
        .replace('"', "#quot;")
        .replace("|", "#124;")
    )
    return out


def mm_unescape(text: str) -> str:
    """Inverse of mm_text for the entities it produces."""
    out = text
    for entity, char in _ENTITIES:
        out = out.replace(entity, char)
    return out


def mm_edge_label(text: str) -> str:
    """Format a Mermaid *edge label* (the text inside `-->|...|`) safely."""
    raw = str(text)
    escaped = mm_text(raw)
    stripped = raw.lstrip()
    if stripped and not re.match(r"[A-Za-z0-9_]", stripped[0]):
        return f'"{escaped}"'
    return escaped


def assert_mm_id(value: str) -> str:
    if not MERMAID_ID_RE.match(value):
        raise ValueError(f"Not Mermaid-safe id: {value!r}")
    return value


def mm_unique_id(base: str, used: set[str]) -> str:
    candidate = base
    n = 2
    while candidate in used:
        candidate = f"{base}_{n}"
        n += 1
    used.add(candidate)
    return candidate


def _pad(indent: int) -> str:
    return "  " * indent


def mm_flow_node(node_id: str, label: str, *, shape: str = "box", indent: int = 1) -> str:
    opening, closing = NODE_SHAPES[shape]
    return f'{_pad(indent)}{assert_mm_id(node_id)}{opening}"{mm_text(label)}"{closing}'


def mm_subgraph_open(subgraph_id: str, title: str, *, indent: int = 1) -> str:
    return f'{_pad(indent)}subgraph {assert_mm_id(subgraph_id)}["{mm_text(title)}"]'


def mm_subgraph_close(*, indent: int = 1) -> str:
    return f"{_pad(indent)}end"


def _mm_normalize_flow_arrow(arrow: str) -> str:
    """Normalize common (often accidental) flowchart arrows to valid Mermaid syntax.

    Mermaid flowcharts use `-->` for a normal arrow, `-.->` for a dotted arrow
    and `==>` for a thick arrow. Callers sometimes pass `->`, `.->` or `=>`;
    normalize those to the correct Mermaid flowchart forms.
    """
    a = str(arrow).strip()
    if a == "->":
        return "-->"
    if a == ".->":
        return "-.->"
    if a == "=>":
        return "==>"
    return a


def mm_flow_edge(src: str, dst: str, label: str | None = None, arrow: str = "-->") -> str:
    a = _mm_normalize_flow_arrow(arrow)
    if label:
        lbl = mm_edge_label(label)
        # Mermaid flowchart dotted edge labels must be in the middle.
        if a == "-.->":
            return f"  {src} -. {lbl} .-> {dst}"
        if a == "==>":
            return f"  {src} == {lbl} ==> {dst}"
        return f"  {src} {a}|{lbl}| {dst}"
    return f"  {src} {a} {dst}"


def mm_link_style(indices: Iterable[int], style: str) -> str:
    """`linkStyle` directive for the given 0-based link positions."""
    return f"  linkStyle {','.join(str(i) for i in indices)} {style}"


def mm_class_def(class_name: str, style: str) -> str:
    return f"  classDef {class_name} {style}"


def mm_class_apply(node_ids: list[str] | tuple[str, ...], class_name: str) -> str:
    return f"  class {','.join(node_ids)} {class_name}"


def mm_comment(text: str) -> str:
    # Ensure it won't be parsed as a directive.
    t = str(text).replace("\n", " ").strip()
    if t.startswith("{"):
        t = " " + t
    return f"%% {t}"
