"""Back-projection of engine coordinates onto topology nodes."""

from __future__ import annotations

import math
from collections.abc import Callable

import networkx as nx

from topology_layout.types import Bounds, Margins, Node, Point


def center_offset(bounds: Bounds, width: float, height: float, margins: Margins) -> Point:
    """Offset that centres the arrangement in the viewport.

    On an axis where the arrangement does not fit, the offset is just the
    margin (top-left aligned, the viewport scrolls).
    """
    offset_x = margins.left
    offset_y = margins.top
    if bounds.width < width:
        offset_x = (width - bounds.width) / 2 + margins.left
    if bounds.height < height:
        offset_y = (height - bounds.height) / 2 + margins.top
    return Point(x=offset_x, y=offset_y)


def circle_positions(center: Point, members: list[Node], radius: float) -> dict[str, Point]:
    """Spread members evenly on a circle, member ``i`` of ``n`` at ``2πi/n``."""
    count = len(members)
    positions: dict[str, Point] = {}
    for i, node in enumerate(members):
        angle = math.pi * 2 * i / count
        positions[node.id] = Point(
            x=center.x + radius * math.sin(angle),
            y=center.y + radius * math.cos(angle),
        )
    return positions


def back_project(
    graph: nx.DiGraph,
    offset: Point,
    scale: Callable[[float], float],
) -> dict[str, Point]:
    """Final position of every topology node, keyed by node id.

    Plain layout nodes map straight to their topology node. Cluster nodes (those
    carrying ``members``) are expanded into a circle of radius
    ``scale(sqrt(n))`` around the cluster's centre.
    """
    positions: dict[str, Point] = {}

    for node_id, attrs in graph.nodes(data=True):
        center = Point(x=attrs["x"] + offset.x, y=attrs["y"] + offset.y)
        members: list[Node] | None = attrs.get("members")
        if members:
            radius = scale(math.sqrt(len(members)))
            positions.update(circle_positions(center, members, radius))
        else:
            positions[node_id] = center

    return positions
