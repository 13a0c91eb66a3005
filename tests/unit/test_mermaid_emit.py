import re
from pathlib import Path

import pytest

from wiring_gen.constants import DASHED_LINK_STYLE, RETURNS_TO
from wiring_gen.io import graph_from_model, load_model
from wiring_gen.mermaid_emit import emit_mermaid, emit_mermaid_block, plan_links
from wiring_gen.model import build_graph
from wiring_gen.organize import organize
from wiring_gen.styles import RenderContext
from wiring_gen.table_parser import parse_tables


FIXTURE_DIR = Path(__file__).resolve().parents[1] / "fixtures" / "search_app"

LINK_RE = re.compile(r"^  \w+ (-->|-\.->|==>|-\. |== )")


def row(node_id, affordance, control, wires="—", returns="—", component="Search"):
    return {
        "#": node_id,
        "Component": component,
        "Affordance": affordance,
        "Control": control,
        "Wires Out": wires,
        "Returns To": returns,
    }


def search_graph():
    return build_graph(
        parse_tables(
            [row("U1", "search box", "type", wires="→ N3"), row("U2", "results", "render")],
            [
                row("N3", "performSearch", "call", wires="→ N4, → N6", returns="void"),
                row("N4", "searchOneCategory", "call", returns="→ N3"),
                row("N6", "renderResults", "render", returns="→ U2"),
            ],
        )
    )


def load_fixture_graph():
    graph, _ = graph_from_model(load_model(FIXTURE_DIR / "model.yaml"))
    return graph


def link_lines(code):
    return [line for line in code.splitlines() if LINK_RE.match(line)]


def link_style_indices(code):
    styles = [line for line in code.splitlines() if line.strip().startswith("linkStyle ")]
    assert len(styles) <= 1
    if not styles:
        return []
    return [int(i) for i in styles[0].split()[1].split(",")]


def test_search_flow_output():
    assert emit_mermaid(search_graph()) == "\n".join(
        [
            "flowchart TB",
            '  subgraph place_Search["Place Search"]',
            '    U1["U1: search box"]',
            '    N3["N3: performSearch"]',
            '    N4["N4: searchOneCategory"]',
            '    N6["N6: renderResults"]',
            '    U2["U2: results"]',
            "  end",
            "  U1 --> N3",
            "  N3 --> N4",
            "  N3 --> N6",
            "  N4 -.-> N3",
            "  N6 -.-> U2",
            f"  linkStyle 3,4 {DASHED_LINK_STYLE}",
            "  classDef ui fill:#ffb6c1,stroke:#d87093,color:#000",
            "  classDef nonui fill:#d3d3d3,stroke:#808080,color:#000",
            "  classDef component fill:#ffffff,stroke:#333,stroke-dasharray:5 5,color:#000",
            "  class U1,U2 ui",
            "  class N3,N4,N6 nonui",
            "",
        ]
    )


def test_link_style_lists_exactly_the_dashed_links():
    graph = load_fixture_graph()
    code = emit_mermaid(graph)
    links = link_lines(code)
    dashed = [i for i, line in enumerate(links) if " -.-> " in line or " -. " in line]
    assert link_style_indices(code) == dashed
    assert dashed == list(range(dashed[0], dashed[0] + len(dashed)))
    assert len(dashed) == len(graph.edges_of_kind(RETURNS_TO))
    assert len(links) == len(graph.edges)


def test_link_plan_indices():
    graph = load_fixture_graph()
    plan = plan_links(graph, organize(graph))
    assert plan.dashed_indices == list(range(10, 17))
    assert [e.id for e in plan.refers] == ["U4==>cmp_FilterPanel"]


def test_fixture_links_cover_navigation_labels_and_references():
    code = emit_mermaid(load_fixture_graph())
    links = link_lines(code)
    assert links[:10] == [
        "  U1 --> N1",
        "  N1 --> N3",
        "  N3 --> N4",
        "  N3 --> N6",
        "  N4 -->|cache.put()| N5",
        "  U3 --> P2",
        "  N11a --> N3",
        "  N11b --> N8",
        "  U7 --> N7",
        "  N7 --> N3",
    ]
    assert links[-1] == "  U4 ==> cmp_FilterPanel"
    assert '    N5[("N5: results cache")]' in code
    assert '    U4[["U4: _FilterPanel"]]' in code
    assert '  subgraph cmp_FilterPanel["Component FilterPanel"]' in code


def test_no_link_style_without_dashed_links():
    graph = build_graph(parse_tables([row("U1", "go", "click", wires="→ N1")], [row("N1", "onGo", "observe", wires="terminal")]))
    code = emit_mermaid(graph)
    assert "linkStyle" not in code
    assert link_lines(code) == ["  U1 --> N1"]


def test_output_is_idempotent():
    first = emit_mermaid(load_fixture_graph())
    assert emit_mermaid(load_fixture_graph()) == first
    assert emit_mermaid(load_fixture_graph(), direction="LR").replace("flowchart LR", "flowchart TB") == first


def test_scoped_output_only_links_in_scope_nodes():
    code = emit_mermaid(load_fixture_graph(), scope="P2")
    assert link_lines(code) == ["  N11b --> N8", "  N8 -.-> U6"]
    assert link_style_indices(code) == [1]
    assert "subgraph P1" not in code


def test_flagged_nodes_get_the_violation_class():
    code = emit_mermaid(load_fixture_graph(), context=RenderContext(flagged=frozenset({"U5"})))
    assert "  classDef violation stroke:#d00000,stroke-width:3px,stroke-dasharray:4 2" in code
    assert code.rstrip("\n").endswith("  class U5 violation")


def test_title_comment_and_block():
    graph = search_graph()
    code = emit_mermaid(graph, context=RenderContext(title="Slice V1"))
    assert code.splitlines()[1] == "%% Slice V1"
    block = emit_mermaid_block(graph)
    assert block.startswith("```mermaid\nflowchart TB\n")
    assert block.endswith("```\n")


def test_unknown_direction():
    with pytest.raises(ValueError):
        emit_mermaid(search_graph(), direction="XY")
