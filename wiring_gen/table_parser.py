# wiring_gen/table_parser.py
"""Parse affordance table rows into Node records and pre-resolution edges.

Rows come either from YAML (mappings keyed by column name) or from markdown
tables (see :func:`rows_from_markdown`). Edge targets are kept as raw ids here;
resolving them against the full id set is the graph builder's job.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from .constants import (
    COL_AFFORDANCE,
    COL_COMPONENT,
    COL_CONTROL,
    COL_ID,
    COL_PLACE,
    COL_RETURNS_TO,
    COL_WIRES_OUT,
    CONTROLS,
    KIND_NON_UI,
    KIND_UI,
    MARKER_DATA_STORE,
    MARKER_TERMINAL,
    MARKER_VOID,
    NODE_ID_RE,
    NONE_MARKERS,
    REFERENCE_PREFIX,
    RETURNS_TO,
    TERMINAL_CONTROLS,
    WIRES_OUT,
)
from .errors import DuplicateIdError, MalformedRowError
from .model import Edge, Node

CELL_MARKERS: frozenset[str] = frozenset(
    {MARKER_DATA_STORE, MARKER_TERMINAL, MARKER_VOID}
)

_ARROW_RE = re.compile(r"→|->|⟶")
_TOKEN_RE = re.compile(r"^#?([A-Z]\d+[a-z]?)(?![A-Za-z0-9_])\s*(.*)$")

# Column aliases accepted from YAML rows (normalized: lowercase, no spaces/underscores).
_COLUMN_KEYS: dict[str, tuple[str, ...]] = {
    COL_ID: ("#", "id"),
    COL_PLACE: ("place",),
    COL_COMPONENT: ("component",),
    COL_AFFORDANCE: ("affordance", "label"),
    COL_CONTROL: ("control",),
    COL_WIRES_OUT: ("wiresout",),
    COL_RETURNS_TO: ("returnsto",),
}


@dataclass(frozen=True)
class CellRef:
    target: str
    label: str = ""


@dataclass(frozen=True)
class ParsedCell:
    refs: tuple[CellRef, ...] = ()
    markers: frozenset[str] = frozenset()


@dataclass(frozen=True)
class RowRecord:
    node: Node
    wires_out: ParsedCell
    returns_to: ParsedCell


@dataclass
class ParsedTables:
    rows: list[RowRecord] = field(default_factory=list)

    @property
    def nodes(self) -> list[Node]:
        return [r.node for r in self.rows]

    @property
    def edges(self) -> list[Edge]:
        out: list[Edge] = []
        for r in self.rows:
            out.extend(
                Edge(r.node.id, ref.target, WIRES_OUT, ref.label) for ref in r.wires_out.refs
            )
            out.extend(
                Edge(r.node.id, ref.target, RETURNS_TO, ref.label)
                for ref in r.returns_to.refs
            )
        return out


@dataclass
class MarkdownTables:
    ui_rows: list[dict[str, str]] = field(default_factory=list)
    non_ui_rows: list[dict[str, str]] = field(default_factory=list)
    places: list[dict[str, str]] = field(default_factory=list)


def _strip_markup(text: str) -> str:
    return str(text).replace("`", "").replace("**", "").strip()


def _annotation(rest: str) -> str:
    s = rest.strip()
    if s.startswith(":"):
        s = s[1:].strip()
    if s.startswith("(") and s.endswith(")"):
        s = s[1:-1].strip()
    return s


def _split_refs(text: str) -> list[str]:
    """Split on commas and semicolons that sit outside parentheses."""
    pieces: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
        elif ch in ",;" and depth == 0:
            pieces.append(text[start:i])
            start = i + 1
    pieces.append(text[start:])
    return pieces


def parse_cell(text: Any, *, table: str, row: int, column: str) -> ParsedCell:
    """Parse a `Wires Out` / `Returns To` cell into id references and markers."""
    raw = _strip_markup("" if text is None else text)
    if raw.lower() in NONE_MARKERS:
        return ParsedCell()

    refs: list[CellRef] = []
    markers: set[str] = set()
    for piece in _split_refs(_ARROW_RE.sub(",", raw)):
        token = piece.strip()
        if token.lower() in NONE_MARKERS:
            continue
        if token.lower() in CELL_MARKERS:
            markers.add(token.lower())
            continue

        m = _TOKEN_RE.match(token)
        if not m:
            raise MalformedRowError(table, row, column, f"cannot parse id token {token!r}")
        refs.append(CellRef(m.group(1), _annotation(m.group(2))))

    return ParsedCell(tuple(refs), frozenset(markers))


def _norm_key(key: object) -> str:
    return re.sub(r"[\s_]+", "", str(key)).lower()


def _cell(row: Mapping[str, Any], column: str) -> str:
    wanted = _COLUMN_KEYS[column]
    for key, value in row.items():
        if _norm_key(key) in wanted:
            if value is None:
                return ""
            if isinstance(value, (list, tuple)):
                return ", ".join(str(v) for v in value)
            return str(value)
    return ""


def _flag(row: Mapping[str, Any], name: str) -> bool:
    for key, value in row.items():
        if _norm_key(key) == name:
            return bool(value)
    return False


def parse_rows(
    rows: Sequence[Mapping[str, Any]],
    *,
    kind: str,
    table: str,
    start_order: int = 0,
) -> list[RowRecord]:
    records: list[RowRecord] = []
    for i, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            raise MalformedRowError(table, i, COL_ID, "row is not a mapping")

        raw_id = _strip_markup(_cell(row, COL_ID)).lstrip("#").strip()
        if not NODE_ID_RE.match(raw_id):
            raise MalformedRowError(table, i, COL_ID, f"invalid id token {raw_id!r}")

        label = _strip_markup(_cell(row, COL_AFFORDANCE))
        if not label:
            raise MalformedRowError(table, i, COL_AFFORDANCE, "missing affordance name")

        refers_to: Optional[str] = None
        if label.startswith(REFERENCE_PREFIX):
            refers_to = label[len(REFERENCE_PREFIX):].strip()
            if not refers_to:
                raise MalformedRowError(
                    table, i, COL_AFFORDANCE, "reference node names no component"
                )

        control = _strip_markup(_cell(row, COL_CONTROL)).lower()
        if control in NONE_MARKERS and refers_to is not None:
            control = ""
        elif control not in CONTROLS:
            raise MalformedRowError(
                table, i, COL_CONTROL, f"unknown control {control!r} (expected one of {', '.join(CONTROLS)})"
            )

        wires = parse_cell(_cell(row, COL_WIRES_OUT), table=table, row=i, column=COL_WIRES_OUT)
        returns = parse_cell(
            _cell(row, COL_RETURNS_TO), table=table, row=i, column=COL_RETURNS_TO
        )
        if refers_to is not None:
            for column, cell in ((COL_WIRES_OUT, wires), (COL_RETURNS_TO, returns)):
                if cell.refs:
                    raise MalformedRowError(
                        table, i, column, "reference nodes cannot carry wiring of their own"
                    )

        markers = wires.markers | returns.markers
        place = _strip_markup(_cell(row, COL_PLACE)) or None
        node = Node(
            id=raw_id,
            kind=kind,
            component=_strip_markup(_cell(row, COL_COMPONENT)),
            label=label,
            control=control,
            is_data_store=MARKER_DATA_STORE in markers or _flag(row, "store"),
            is_terminal=(
                MARKER_TERMINAL in markers
                or control in TERMINAL_CONTROLS
                or _flag(row, "terminal")
            ),
            is_void=MARKER_VOID in markers or _flag(row, "void"),
            place=place,
            table=table,
            row=i,
            order=start_order + i - 1,
            refers_to=refers_to,
        )
        records.append(RowRecord(node, wires, returns))

    return records


def parse_tables(
    ui_rows: Sequence[Mapping[str, Any]],
    non_ui_rows: Sequence[Mapping[str, Any]],
) -> ParsedTables:
    """Parse both affordance tables; any parse error aborts the whole pass."""
    records = parse_rows(ui_rows, kind=KIND_UI, table="UI")
    records += parse_rows(
        non_ui_rows, kind=KIND_NON_UI, table="Non-UI", start_order=len(records)
    )

    seen: dict[str, Node] = {}
    for rec in records:
        first = seen.get(rec.node.id)
        if first is not None:
            raise DuplicateIdError(rec.node.id, first.where, rec.node.where)
        seen[rec.node.id] = rec.node

    return ParsedTables(records)


# -------------------------
# Markdown tables
# -------------------------

_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+(.*)$")
_SEPARATOR_RE = re.compile(r"^\s*\|?\s*:?-{2,}")


def _split_row(line: str) -> list[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|") and not inner.endswith("\\|"):
        inner = inner[:-1]
    return [c.replace("\\|", "|").strip() for c in re.split(r"(?<!\\)\|", inner)]


def _iter_tables(text: str) -> Iterable[tuple[str, list[str], list[list[str]]]]:
    heading = ""
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]
        m = _HEADING_RE.match(line)
        if m:
            heading = m.group(1).strip()
            i += 1
            continue

        if line.strip().startswith("|") and i + 1 < len(lines) and _SEPARATOR_RE.match(
            lines[i + 1]
        ):
            header = _split_row(line)
            body: list[list[str]] = []
            i += 2
            while i < len(lines) and lines[i].strip().startswith("|"):
                body.append(_split_row(lines[i]))
                i += 1
            yield heading, header, body
            continue

        i += 1


def _table_kind(heading: str, first_id: str) -> str:
    h = heading.lower()
    if re.search(r"non[-\s]?ui|code", h):
        return KIND_NON_UI
    if re.search(r"\bui\b", h):
        return KIND_UI
    return KIND_UI if first_id.lstrip("#").startswith("U") else KIND_NON_UI


def rows_from_markdown(text: str) -> MarkdownTables:
    """Collect affordance and place tables from a markdown document."""
    out = MarkdownTables()
    for heading, header, body in _iter_tables(text):
        keys = [_norm_key(h) for h in header]
        rows = [dict(zip(header, cells)) for cells in body]
        if "affordance" in keys:
            first_id = body[0][0] if body and body[0] else ""
            if _table_kind(heading, first_id) == KIND_UI:
                out.ui_rows.extend(rows)
            else:
                out.non_ui_rows.extend(rows)
        elif "place" in keys and ("#" in keys or "id" in keys):
            for row in rows:
                out.places.append(
                    {
                        "id": _strip_markup(_cell(row, COL_ID)).lstrip("#"),
                        "name": _strip_markup(_cell(row, COL_PLACE)),
                        "entry": _strip_markup(
                            next((v for k, v in row.items() if _norm_key(k) == "entry"), "")
                        ),
                    }
                )
    return out
