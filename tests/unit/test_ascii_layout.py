import re
from collections import Counter
from pathlib import Path

import pytest

from wiring_gen.ascii_layout import LEGEND, box, render_ascii
from wiring_gen.io import graph_from_model, load_model
from wiring_gen.model import build_graph
from wiring_gen.organize import organize
from wiring_gen.slices import Slice, SliceAssignment, slice_context
from wiring_gen.styles import RenderContext
from wiring_gen.table_parser import parse_tables


FIXTURE_DIR = Path(__file__).resolve().parents[1] / "fixtures" / "search_app"

ENTRY_RE = re.compile(r"│ \[\[?\(?([A-Z]\d+[a-z]?)\)?\]\]? ")


def load_fixture_graph():
    graph, _ = graph_from_model(load_model(FIXTURE_DIR / "model.yaml"))
    return graph


def lines_after(text, entry):
    """Connector lines written under the entry that starts with `entry`."""
    lines = text.splitlines()
    start = next(i for i, line in enumerate(lines) if f"│ {entry}" in line)
    out = []
    for line in lines[start + 1:]:
        body = line.strip("│ ").rstrip()
        if not line.startswith("│     ") or not body.startswith(("──►", "◄")):
            break
        out.append(body)
    return out


def test_every_node_is_drawn_exactly_once():
    graph = load_fixture_graph()
    text = render_ascii(graph)
    assert Counter(ENTRY_RE.findall(text)) == Counter(n.id for n in graph.nodes)


def test_entries_show_kind_shape_and_control():
    text = render_ascii(load_fixture_graph())
    assert "│ [U1] **UI search input  <type>" in text
    assert "│ [N3] performSearch  <call>" in text
    assert "│ [(N5)] results cache  <write>" in text
    assert "│ [[U4]] **UI _FilterPanel  ⇢ Component FilterPanel" in text


def test_fan_in_is_annotated_instead_of_redrawn():
    text = render_ascii(load_fixture_graph())
    assert lines_after(text, "[N3]") == [
        "◄── #N7",
        "◄── #N11a",
        "◄─ ─ ─ N4",
        "──► N4",
        "──► N6",
    ]
    assert lines_after(text, "[N11a]") == ["──► #N3"]


def test_slice_mode_marks_connector_statuses():
    graph, assignment = graph_from_model(load_model(FIXTURE_DIR / "model.yaml"))
    text = render_ascii(graph, context=slice_context(graph, assignment, "V2"))
    assert lines_after(text, "[N3]") == [
        "◄── #N7  [future]",
        "◄── #N11a  [built]",
        "◄─ ─ ─ N4  [built]",
        "──► N4  [built]",
        "──► N6  [this slice]",
    ]
    assert lines_after(text, "[N4]") == ["──► N5 cache.put()  [this slice]"]


def test_listed_edges_take_their_slice_status():
    graph, _ = graph_from_model(load_model(FIXTURE_DIR / "model.yaml"))
    assignment = SliceAssignment(
        (
            Slice("V1", node_ids=frozenset({"N3", "N4"})),
            Slice("V2", edge_ids=frozenset({"N3-->N4"})),
        )
    )
    text = render_ascii(graph, context=slice_context(graph, assignment, "V2"))
    assert lines_after(text, "[N3]")[3:] == ["──► N4  [this slice]", "──► N6  [future]"]


def test_returns_and_labels():
    text = render_ascii(load_fixture_graph())
    assert lines_after(text, "[N4]") == ["──► N5 cache.put()"]
    assert lines_after(text, "[U1]") == ["◄─ ─ ─ N11a", "──► N1"]
    assert lines_after(text, "[N6]") == ["◄─ ─ ─ N5"]


def test_navigation_and_cross_container_targets():
    text = render_ascii(load_fixture_graph())
    assert lines_after(text, "[U3]") == ["◄─ ─ ─ N6", "──► [P2: Detail page]"]
    assert lines_after(text, "[N7]") == ["──► #N3 (in Place P1: Search page)"]


def test_cycles_point_back_to_the_ancestor():
    graph = build_graph(
        parse_tables(
            [],
            [
                {"#": "N1", "Component": "Loop", "Affordance": "controller", "Control": "observe", "Wires Out": "→ N2"},
                {"#": "N2", "Component": "Loop", "Affordance": "handler", "Control": "observe", "Wires Out": "→ N1, → N2"},
            ],
        )
    )
    text = render_ascii(graph, legend=False)
    assert lines_after(text, "[N1]") == ["◄── #N2", "──► N2"]
    assert lines_after(text, "[N2]") == ["◄── #N2", "──► ↑N1 (cycle)", "──► ↑N2 (cycle)"]
    assert Counter(ENTRY_RE.findall(text)) == Counter({"N1": 1, "N2": 1})


def test_box_drawing():
    assert box("Place P1", ["[U1] a"]) == [
        "┌─ Place P1 ─┐",
        "│ [U1] a     │",
        "└" + "─" * 12 + "┘",
    ]
    assert box("P", []) == [
        "┌─ P " + "─" * 5 + "┐",
        "│ (empty) │",
        "└" + "─" * 9 + "┘",
    ]


def test_boxes_are_rectangular():
    for block in render_ascii(load_fixture_graph(), legend=False).strip().split("\n\n"):
        widths = {len(line) for line in block.splitlines()}
        assert len(widths) == 1


def test_scoped_rendering():
    graph = load_fixture_graph()
    text = render_ascii(graph, layout=organize(graph), scope="P2")
    assert "Place P2: Detail page" in text
    assert "Place P1" not in text
    assert sorted(ENTRY_RE.findall(text)) == ["N11b", "N8", "U5", "U6"]
    with pytest.raises(KeyError):
        render_ascii(graph, scope="P9")


def test_flagged_nodes_and_legend():
    text = render_ascii(load_fixture_graph(), context=RenderContext(flagged=frozenset({"U5"})))
    assert "│ [U5] **UI share button  <click>  !" in text
    assert text.rstrip("\n").endswith(LEGEND)


def test_rendering_is_deterministic():
    graph = load_fixture_graph()
    assert render_ascii(graph) == render_ascii(load_fixture_graph())
