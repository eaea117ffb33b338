"""topology_layout — coordinates for topology diagrams.

Public API:
    do_layout(nodes, edges, width, height, scale, margins, topology_id, cache) -> LayoutResult | None
    layout_topology(...) -> LayoutResult | None   (same, without mutating inputs)
"""

from __future__ import annotations

from topology_layout.cache import LayoutGraphCache
from topology_layout.engine import LayoutEngine, SugiyamaEngine
from topology_layout.layout import do_layout, layout_topology
from topology_layout.types import (
    DEFAULT_OPTIONS,
    MAX_NODES,
    NODE_SEP,
    RANK_NODE_PREFIX,
    RANK_SEP,
    Bounds,
    Edge,
    LayoutOptions,
    LayoutResult,
    Margins,
    Node,
    Point,
)

__all__ = [
    "DEFAULT_OPTIONS",
    "MAX_NODES",
    "NODE_SEP",
    "RANK_NODE_PREFIX",
    "RANK_SEP",
    "Bounds",
    "Edge",
    "LayoutEngine",
    "LayoutGraphCache",
    "LayoutOptions",
    "LayoutResult",
    "Margins",
    "Node",
    "Point",
    "SugiyamaEngine",
    "do_layout",
    "layout_topology",
]
