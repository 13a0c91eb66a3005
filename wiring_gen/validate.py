# wiring_gen/validate.py
from __future__ import annotations

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Literal, Optional, Tuple

from .constants import HANDLER_CONTROLS, QUERY_CONTROLS, RETURNS_TO, WIRES_OUT
from .model import AffordanceGraph

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class ValidationViolation:
    """One structural invariant failure. Advisory unless escalated."""

    node_id: str
    rule: int
    code: str
    message: str
    severity: Severity = "warning"
    hint: Optional[str] = None

    def as_tuple(self) -> tuple[str, int, str]:
        return (self.node_id, self.rule, self.message)


@dataclass(frozen=True)
class ValidateConfig:
    """Validation configuration.

    `ignore` drops rule codes, `escalate` turns warnings into errors and
    `parallel` runs the independent passes on a thread pool. Pass results
    are merged in pass order, so the report is the same either way.
    """

    ignore: set[str] = field(default_factory=set)
    escalate: set[str] = field(default_factory=set)
    parallel: bool = False


RULE_CODES: tuple[str, ...] = (
    "R1_UNREACHABLE_UI",
    "R2_HANDLER_NO_WIRES_OUT",
    "R3_QUERY_NO_RETURNS_TO",
    "R4_STORE_NO_READER",
    "R4_STORE_NO_WRITER",
    "R5_DUPLICATE_AFFORDANCE",
    "R5_DUPLICATE_PLACEMENT",
)

Emit = Callable[..., None]
Pass = Callable[[AffordanceGraph, Emit], None]


def _check_reachable_ui(graph: AffordanceGraph, emit: Emit) -> None:
    inbound = {e.target for e in graph.edges if e.kind in (WIRES_OUT, RETURNS_TO)}
    # Navigation into a place reaches its declared entry nodes.
    for target in [t for t in inbound if graph.is_place(t)]:
        inbound.update(graph.place_index[target].entry)
    for node in graph.nodes:
        if node.is_ui and not node.is_reference and node.id not in inbound:
            emit(
                node.id,
                1,
                "R1_UNREACHABLE_UI",
                f"unreachable UI affordance: {node.id} {node.label!r} has no inbound edge",
                hint="wire it from a handler, a data store or a navigation",
            )


def _check_handlers(graph: AffordanceGraph, emit: Emit) -> None:
    for node in graph.nodes:
        if node.is_ui or node.is_data_store or node.is_terminal:
            continue
        if node.control not in HANDLER_CONTROLS:
            continue
        if not graph.outgoing(node.id, WIRES_OUT):
            emit(
                node.id,
                2,
                "R2_HANDLER_NO_WIRES_OUT",
                f"handler {node.id} {node.label!r} wires out to nothing",
                hint="add its Wires Out targets or mark it `terminal`",
            )


def _check_queries(graph: AffordanceGraph, emit: Emit) -> None:
    for node in graph.nodes:
        if node.is_ui or node.is_data_store or node.is_void:
            continue
        if node.control not in QUERY_CONTROLS:
            continue
        if not graph.outgoing(node.id, RETURNS_TO):
            emit(
                node.id,
                3,
                "R3_QUERY_NO_RETURNS_TO",
                f"function {node.id} {node.label!r} returns to nothing",
                hint="add its Returns To targets or mark it `void`",
            )


def _check_stores(graph: AffordanceGraph, emit: Emit) -> None:
    for node in graph.nodes:
        if not node.is_data_store:
            continue
        if not graph.outgoing(node.id, RETURNS_TO):
            emit(
                node.id,
                4,
                "R4_STORE_NO_READER",
                f"data store {node.id} {node.label!r} has no reader",
            )
        if not graph.wires_in(node.id):
            emit(
                node.id,
                4,
                "R4_STORE_NO_WRITER",
                f"data store {node.id} {node.label!r} has no writer",
            )


def _check_duplicates(graph: AffordanceGraph, emit: Emit) -> None:
    placements: dict[str, list[str]] = defaultdict(list)
    for container in (*graph.places, *graph.components):
        for node_id in container.node_ids:
            placements[node_id].append(container.id)
    for node in graph.nodes:
        where = placements.get(node.id, [])
        if len(where) > 1:
            emit(
                node.id,
                5,
                "R5_DUPLICATE_PLACEMENT",
                f"{node.id} is placed in {len(where)} containers: {', '.join(where)}",
            )

    by_label: dict[tuple[str, str], list[str]] = defaultdict(list)
    for node in graph.nodes:
        if not node.is_reference:
            by_label[(node.kind, node.label)].append(node.id)
    for (_, label), ids in by_label.items():
        for i, node_id in enumerate(ids):
            for other in ids[:i]:
                if graph.container_of(node_id) == graph.container_of(other):
                    continue
                if other in graph.aliases_of(node_id):
                    continue
                emit(
                    node_id,
                    5,
                    "R5_DUPLICATE_AFFORDANCE",
                    f"{node_id} duplicates {other} ({label!r}) in another container without aliasing",
                    hint=f"rename to an alias pair such as {graph.node(other).alias_base}a/"
                    f"{graph.node(other).alias_base}b",
                )


PASSES: tuple[Pass, ...] = (
    _check_reachable_ui,
    _check_handlers,
    _check_queries,
    _check_stores,
    _check_duplicates,
)


def _run_pass(check: Pass, graph: AffordanceGraph, cfg: ValidateConfig) -> list[ValidationViolation]:
    found: list[ValidationViolation] = []

    def emit(
        node_id: str,
        rule: int,
        code: str,
        message: str,
        hint: Optional[str] = None,
    ) -> None:
        if code in cfg.ignore:
            return
        severity: Severity = "error" if code in cfg.escalate else "warning"
        found.append(ValidationViolation(node_id, rule, code, message, severity, hint))

    check(graph, emit)
    return found


def validate_graph(
    graph: AffordanceGraph, cfg: Optional[ValidateConfig] = None
) -> list[ValidationViolation]:
    """Run every invariant pass and collect all violations (no short-circuit)."""
    cfg = cfg or ValidateConfig()
    if cfg.parallel:
        with ThreadPoolExecutor(max_workers=len(PASSES)) as pool:
            results = list(pool.map(lambda p: _run_pass(p, graph, cfg), PASSES))
    else:
        results = [_run_pass(p, graph, cfg) for p in PASSES]

    violations: list[ValidationViolation] = []
    for found in results:
        violations.extend(found)
    return violations


def split_violations(
    violations: list[ValidationViolation],
) -> Tuple[list[str], list[str]]:
    """Return (errors, warnings) message lists for the CLI."""
    errors = [f"{v.node_id}: {v.message}" for v in violations if v.severity == "error"]
    warnings = [f"{v.node_id}: {v.message}" for v in violations if v.severity == "warning"]
    return errors, warnings


def flagged_nodes(violations: list[ValidationViolation]) -> frozenset[str]:
    return frozenset(v.node_id for v in violations)
