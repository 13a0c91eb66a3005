from pathlib import Path

from wiring_gen.io import graph_from_model, load_model
from wiring_gen.model import PlaceDecl, build_graph
from wiring_gen.table_parser import parse_tables
from wiring_gen.validate import (
    RULE_CODES,
    ValidateConfig,
    flagged_nodes,
    split_violations,
    validate_graph,
)


FIXTURE_DIR = Path(__file__).resolve().parents[1] / "fixtures" / "search_app"


def row(node_id, affordance, control, wires="—", returns="—", component="Search", place=None):
    out = {
        "#": node_id,
        "Component": component,
        "Affordance": affordance,
        "Control": control,
        "Wires Out": wires,
        "Returns To": returns,
    }
    if place:
        out["Place"] = place
    return out


def graph_of(ui, non_ui):
    return build_graph(parse_tables(ui, non_ui))


def codes(violations):
    return [(v.node_id, v.code) for v in violations]


def test_fixture_has_one_unreachable_ui_affordance():
    graph, _ = graph_from_model(load_model(FIXTURE_DIR / "model.yaml"))
    violations = validate_graph(graph)
    assert [v.as_tuple()[:2] for v in violations] == [("U5", 1)]
    (v,) = violations
    assert v.message.startswith("unreachable UI affordance")
    assert v.severity == "warning"


def test_reachability_counts_data_flow_and_control_flow():
    graph = graph_of(
        [row("U1", "search box", "type", wires="→ N1"), row("U2", "results", "render"), row("U3", "spinner", "render")],
        [row("N1", "search", "call", returns="→ U2")],
    )
    assert codes(validate_graph(graph)) == [("U1", "R1_UNREACHABLE_UI"), ("U3", "R1_UNREACHABLE_UI")]


def test_navigation_reaches_the_entry_nodes_of_a_place():
    graph = build_graph(
        parse_tables(
            [
                row("U1", "details link", "click", wires="→ P2", place="P1"),
                row("U2", "detail header", "render", place="P2"),
                row("U3", "share button", "click", place="P2"),
            ],
            [],
        ),
        places=[PlaceDecl("P1", "Search"), PlaceDecl("P2", "Detail", entry=("U2",))],
    )
    assert codes(validate_graph(graph)) == [("U1", "R1_UNREACHABLE_UI"), ("U3", "R1_UNREACHABLE_UI")]


def test_reference_nodes_are_not_reachability_targets():
    graph = graph_of(
        [row("U1", "_Widget", "—"), row("U2", "widget box", "render", component="Widget")],
        [row("N1", "load", "call", component="Widget", returns="→ U2")],
    )
    assert codes(validate_graph(graph)) == []


def test_handler_without_wires_out():
    graph = graph_of(
        [],
        [
            row("N1", "onInput", "observe"),
            row("N2", "onScroll", "observe", wires="terminal"),
            row("N3", "each", "iterate", wires="→ N2"),
        ],
    )
    assert codes(validate_graph(graph)) == [("N1", "R2_HANDLER_NO_WIRES_OUT")]


def test_query_without_returns_to():
    graph = graph_of(
        [],
        [
            row("N1", "fetch", "call"),
            row("N2", "log", "call", returns="void"),
        ],
    )
    assert codes(validate_graph(graph)) == [("N1", "R3_QUERY_NO_RETURNS_TO")]


def test_data_store_needs_reader_and_writer():
    graph = graph_of(
        [],
        [
            row("N1", "cache", "write", wires="data store"),
            row("N2", "save", "write", wires="→ N3"),
            row("N3", "db", "write", wires="data store", returns="→ N4"),
            row("N4", "show", "render"),
        ],
    )
    assert codes(validate_graph(graph)) == [
        ("N1", "R4_STORE_NO_READER"),
        ("N1", "R4_STORE_NO_WRITER"),
    ]


def test_duplicate_affordance_needs_aliases():
    dup = graph_of(
        [],
        [
            row("N1", "activeQuery.next()", "observe", wires="terminal", place="P1"),
            row("N2", "activeQuery.next()", "observe", wires="terminal", place="P2"),
        ],
    )
    (v,) = validate_graph(dup)
    assert (v.node_id, v.rule, v.code) == ("N2", 5, "R5_DUPLICATE_AFFORDANCE")
    assert "N1" in v.message
    assert v.hint == "rename to an alias pair such as N1a/N1b"

    aliased = graph_of(
        [],
        [
            row("N1a", "activeQuery.next()", "observe", wires="terminal", place="P1"),
            row("N1b", "activeQuery.next()", "observe", wires="terminal", place="P2"),
        ],
    )
    assert validate_graph(aliased) == []


def test_same_label_in_same_container_is_not_a_duplicate():
    graph = graph_of(
        [],
        [
            row("N1", "refresh", "observe", wires="terminal"),
            row("N2", "refresh", "observe", wires="terminal"),
        ],
    )
    assert validate_graph(graph) == []


def broken_graph():
    return graph_of(
        [row("U1", "orphan", "click"), row("U2", "orphan", "click", place="Other")],
        [
            row("N1", "onInput", "observe"),
            row("N2", "fetch", "call"),
            row("N3", "cache", "write", wires="data store"),
        ],
    )


def test_passes_never_short_circuit():
    assert codes(validate_graph(broken_graph())) == [
        ("U1", "R1_UNREACHABLE_UI"),
        ("U2", "R1_UNREACHABLE_UI"),
        ("N1", "R2_HANDLER_NO_WIRES_OUT"),
        ("N2", "R3_QUERY_NO_RETURNS_TO"),
        ("N3", "R4_STORE_NO_READER"),
        ("N3", "R4_STORE_NO_WRITER"),
        ("U2", "R5_DUPLICATE_AFFORDANCE"),
    ]


def test_parallel_run_matches_sequential_run():
    graph = broken_graph()
    sequential = validate_graph(graph, ValidateConfig(parallel=False))
    for _ in range(5):
        assert validate_graph(graph, ValidateConfig(parallel=True)) == sequential


def test_ignore_and_escalate():
    graph = broken_graph()
    cfg = ValidateConfig(
        ignore={"R1_UNREACHABLE_UI", "R5_DUPLICATE_AFFORDANCE"},
        escalate={"R3_QUERY_NO_RETURNS_TO"},
    )
    violations = validate_graph(graph, cfg)
    assert {v.code for v in violations} == {
        "R2_HANDLER_NO_WIRES_OUT",
        "R3_QUERY_NO_RETURNS_TO",
        "R4_STORE_NO_READER",
        "R4_STORE_NO_WRITER",
    }
    errors, warnings = split_violations(violations)
    assert errors == ["N2: function N2 'fetch' returns to nothing"]
    assert len(warnings) == 3


def test_strict_escalation_covers_every_rule():
    violations = validate_graph(broken_graph(), ValidateConfig(escalate=set(RULE_CODES)))
    assert all(v.severity == "error" for v in violations)
    assert flagged_nodes(violations) == frozenset({"U1", "U2", "N1", "N2", "N3"})
