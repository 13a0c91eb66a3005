from pathlib import Path

import pytest

from wiring_gen.io import graph_from_model, load_model
from wiring_gen.model import build_graph
from wiring_gen.reverse_index import brute_force_wires_in, build_reverse_index
from wiring_gen.table_parser import parse_tables


FIXTURE_DIR = Path(__file__).resolve().parents[1] / "fixtures" / "search_app"


def load_fixture_graph():
    graph, _ = graph_from_model(load_model(FIXTURE_DIR / "model.yaml"))
    return graph


def test_index_matches_brute_force_scan_for_every_node():
    graph = load_fixture_graph()
    for node in graph.nodes:
        assert set(graph.wires_in(node.id)) == brute_force_wires_in(graph, node.id), node.id


def test_index_keeps_edge_order_and_covers_every_node():
    graph = load_fixture_graph()
    index = build_reverse_index(graph)
    assert set(index) == {n.id for n in graph.nodes}
    assert index["N3"] == ("N1", "N7", "N11a")
    assert index["U2"] == ()


def test_navigation_edges_are_not_indexed():
    graph = load_fixture_graph()
    assert all("U3" not in sources for sources in build_reverse_index(graph).values())
    with pytest.raises(KeyError):
        graph.wires_in("P2")


def test_cycles_and_self_loops():
    rows = [
        {"#": "N1", "Component": "Loop", "Affordance": "tick", "Control": "observe", "Wires Out": "→ N1, → N2"},
        {"#": "N2", "Component": "Loop", "Affordance": "tock", "Control": "observe", "Wires Out": "→ N1"},
    ]
    graph = build_graph(parse_tables([], rows))
    assert graph.wires_in("N1") == ("N1", "N2")
    assert graph.wires_in("N2") == ("N1",)
    assert set(graph.wires_in("N1")) == brute_force_wires_in(graph, "N1")
