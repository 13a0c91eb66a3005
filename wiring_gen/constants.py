# wiring_gen/constants.py
from __future__ import annotations

import re

# Affordance ids: one capital letter, digits, optional lowercase alias suffix.
NODE_ID_RE = re.compile(r"^[A-Z]\d+[a-z]?$")
ALIAS_BASE_RE = re.compile(r"^([A-Z]\d+)[a-z]?$")

KIND_UI = "UI"
KIND_NON_UI = "NonUI"

CONTROLS: tuple[str, ...] = (
    "click",
    "type",
    "scroll",
    "call",
    "observe",
    "render",
    "iterate",
    "write",
)

# Non-UI roles used by the structural rules.
HANDLER_CONTROLS: frozenset[str] = frozenset({"observe", "iterate", "write"})
QUERY_CONTROLS: frozenset[str] = frozenset({"call"})
# Pure display controls have no downstream wiring.
TERMINAL_CONTROLS: frozenset[str] = frozenset({"render"})

# Table columns (markdown headers and YAML row keys).
COL_ID = "#"
COL_PLACE = "Place"
COL_COMPONENT = "Component"
COL_AFFORDANCE = "Affordance"
COL_CONTROL = "Control"
COL_WIRES_OUT = "Wires Out"
COL_RETURNS_TO = "Returns To"

# Cell markers.
NONE_MARKERS: frozenset[str] = frozenset({"", "—", "–", "-", "none", "n/a"})
MARKER_DATA_STORE = "data store"
MARKER_TERMINAL = "terminal"
MARKER_VOID = "void"

REFERENCE_PREFIX = "_"

# Edge kinds.
WIRES_OUT = "wires_out"
RETURNS_TO = "returns_to"
REFERS_TO = "refers_to"

EDGE_ARROWS: dict[str, str] = {
    WIRES_OUT: "-->",
    RETURNS_TO: "-.->",
    REFERS_TO: "==>",
}

# Top-level model sections.
UI_SECTION = "ui_affordances"
NON_UI_SECTION = "non_ui_affordances"
PLACES_SECTION = "places"
COMPONENTS_SECTION = "components"
SLICES_SECTION = "slices"

# Split-model filenames (loaded in deterministic order).
MODEL_PART_FILES: tuple[str, ...] = (
    "00_places.yaml",
    "10_components.yaml",
    "20_ui_affordances.yaml",
    "30_non_ui_affordances.yaml",
    # Slices are discovered under slices/*.yaml
    "90_notes.yaml",  # optional; not used by diagrams
)

# Container kinds.
CONTAINER_PLACE = "place"
CONTAINER_COMPONENT = "component"

# Slice statuses.
STATUS_THIS_SLICE = "this_slice"
STATUS_BUILT = "built"
STATUS_FUTURE = "future"

DIRECTION_DEFAULT = "TB"
DIRECTIONS: tuple[str, ...] = ("TB", "TD", "BT", "LR", "RL")

DASHED_LINK_STYLE = "stroke:#999,stroke-width:1px"
