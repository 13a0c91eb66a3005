# wiring_gen/errors.py
from __future__ import annotations

from typing import Iterable


class WiringError(ValueError):
    """Base class for fatal errors raised while building an affordance graph."""


class MalformedRowError(WiringError):
    """A table cell does not follow the affordance table grammar."""

    def __init__(self, table: str, row: int, column: str, detail: str) -> None:
        self.table = table
        self.row = row
        self.column = column
        self.detail = detail
        super().__init__(f"{table} table row {row}, column {column!r}: {detail}")


class DuplicateIdError(WiringError):
    def __init__(self, node_id: str, first: str, second: str) -> None:
        self.node_id = node_id
        self.first = first
        self.second = second
        super().__init__(
            f"duplicate id {node_id!r} (declared at {first} and again at {second})"
        )


class UnknownReferenceError(WiringError):
    def __init__(self, edge_source: str, missing_id: str) -> None:
        self.edge_source = edge_source
        self.missing_id = missing_id
        super().__init__(f"{edge_source} references unknown id {missing_id!r}")


class UnresolvedComponentError(WiringError):
    def __init__(self, reference_id: str, component: str) -> None:
        self.reference_id = reference_id
        self.component = component
        super().__init__(
            f"reference node {reference_id} points to missing component {component!r}"
        )


class ResolutionErrors(WiringError):
    """Every resolution-stage error found in one pass over the graph."""

    def __init__(self, errors: Iterable[WiringError]) -> None:
        self.errors: tuple[WiringError, ...] = tuple(errors)
        lines = [f"{len(self.errors)} unresolved reference(s):"]
        lines.extend(f"  - {err}" for err in self.errors)
        super().__init__("\n".join(lines))
