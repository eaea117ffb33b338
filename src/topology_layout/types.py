"""Types shared across the layout pipeline and its engines."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

# ─── Defaults ─────────────────────────────────────────────────────────────────

MAX_NODES: int = 100  # above this the layout is skipped for the cycle
NODE_SEP: float = 3  # gap between nodes of the same rank (scale units)
RANK_SEP: float = 5  # gap between adjacent ranks (scale units)
RANK_NODE_PREFIX = "scope-rank-"

RANKDIRS = ("TB", "LR")


# ─── Geometry ─────────────────────────────────────────────────────────────────


@dataclass
class Point:
    """A 2D point in viewport coordinates."""

    x: float
    y: float


@dataclass
class Margins:
    """Offsets added to the top-left of the arrangement."""

    top: float = 0.0
    left: float = 0.0

    @classmethod
    def coerce(cls, margins: Margins | Mapping[str, float] | None) -> Margins:
        """Accept a Margins, a ``{"top": .., "left": ..}`` mapping or None."""
        if margins is None:
            return cls()
        if isinstance(margins, Margins):
            return margins
        return cls(top=float(margins.get("top", 0.0)), left=float(margins.get("left", 0.0)))


@dataclass
class Bounds:
    """Overall size of an arrangement as reported by a layout engine."""

    width: float
    height: float


# ─── Topology objects (caller-owned) ──────────────────────────────────────────


@dataclass(eq=False)
class Node:
    """A topology node.

    ``x``, ``y`` and ``rank_node`` are written by :meth:`LayoutResult.apply`.
    A ``rank`` of ``None`` or ``""`` means the node is laid out on its own.
    """

    id: str
    rank: str | None = None
    x: float | None = None
    y: float | None = None
    rank_node: str | None = None


@dataclass(eq=False)
class Edge:
    """A topology edge between two Node objects.

    ``points`` is filled in only while it is ``None``; a route set upstream is
    left alone.
    """

    id: str
    source: Node
    target: Node
    points: list[Point] | None = None


# ─── Configuration ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LayoutOptions:
    """Knobs for one layout call.

    Attributes:
        max_nodes: Node ceiling; larger inputs skip the layout entirely.
        node_sep: Gap between nodes in one rank, in scale units.
        rank_sep: Gap between ranks, in scale units.
        rank_prefix: Prefix of synthetic cluster node ids.
        rankdir: ``"TB"`` (ranks stacked top to bottom) or ``"LR"``.
        refresh_cluster_size: Recompute cluster sizes every call. When false a
            cluster keeps the size it was created with.
    """

    max_nodes: int = MAX_NODES
    node_sep: float = NODE_SEP
    rank_sep: float = RANK_SEP
    rank_prefix: str = RANK_NODE_PREFIX
    rankdir: str = "TB"
    refresh_cluster_size: bool = True

    def __post_init__(self) -> None:
        if self.rankdir not in RANKDIRS:
            raise ValueError(f"unknown rankdir: {self.rankdir!r} (expected one of {', '.join(RANKDIRS)})")
        if self.max_nodes < 1:
            raise ValueError(f"max_nodes must be positive, got {self.max_nodes}")


DEFAULT_OPTIONS = LayoutOptions()


# ─── Result ───────────────────────────────────────────────────────────────────


@dataclass
class LayoutResult:
    """Everything one layout call computed, keyed by caller ids.

    Attributes:
        width: Width of the engine's arrangement.
        height: Height of the engine's arrangement.
        positions: Node id → final position.
        rank_nodes: Node id → id of the cluster it was grouped into.
        edge_points: Edge id → straight two-point path, for edges that had
            no ``points`` of their own.
    """

    width: float
    height: float
    positions: dict[str, Point] = field(default_factory=dict)
    rank_nodes: dict[str, str] = field(default_factory=dict)
    edge_points: dict[str, list[Point]] = field(default_factory=dict)

    @property
    def bounds(self) -> Bounds:
        return Bounds(width=self.width, height=self.height)

    def apply(self, nodes: Iterable[Node] | Mapping[str, Node], edges: Iterable[Edge]) -> None:
        """Write positions, cluster references and edge paths onto caller objects."""
        if isinstance(nodes, Mapping):
            nodes = nodes.values()

        for node in nodes:
            pos = self.positions.get(node.id)
            if pos is not None:
                node.x = pos.x
                node.y = pos.y
            node.rank_node = self.rank_nodes.get(node.id)

        for edge in edges:
            if edge.points is not None:
                continue
            points = self.edge_points.get(edge.id)
            if points is not None:
                edge.points = [Point(x=p.x, y=p.y) for p in points]
