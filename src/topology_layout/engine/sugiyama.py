"""Sugiyama-style layered layout engine.

Phases:
  1. Cycle removal  (greedy-FAS approach)
  2. Layer assignment (longest path over the DAG)
  3. Dummy node insertion for edges spanning several layers
  4. Crossing minimization (barycenter heuristic, seeded from prior positions)
  5. Coordinate assignment (node centres, layers centred on the widest one)

Everything runs on copies; the only writes to the input graph are the ``x``,
``y`` and ``layer`` node attributes and the ``width``, ``height`` and
``dummy_anchors`` graph attributes. The next run on the same graph starts from
those positions.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import networkx as nx

from topology_layout.types import NODE_SEP, RANK_SEP, RANKDIRS, Bounds, Point

logger = logging.getLogger(__name__)

# Upper bound on top-down + bottom-up barycenter sweeps.
MAX_PASSES: int = 24

DUMMY_PREFIX = "__dummy_"

# ─── Cycle Removal (Greedy-FAS) ───────────────────────────────────────────────


def greedy_fas_ordering(graph: nx.DiGraph) -> list[str]:
    """Compute a node ordering using the greedy-FAS heuristic.

    Returns node ids in an ordering that minimizes back-edges.

    Algorithm (Eades, Lin, Smyth 1993):
    - Maintain dynamic in/out degree counters updated as nodes are removed.
    - Repeatedly:
        1. Move all sinks (out_deg == 0) to s2.
        2. Move all sources (in_deg == 0) to s1.
        3. Of remaining nodes in cycles, pick max (out - in) and add to s1.
    - Final ordering: s1 + reversed(s2).

    Iteration follows graph insertion order, so the result does not depend on
    string hashing.
    """
    # dict as an insertion-ordered set
    active: dict[str, None] = dict.fromkeys(graph.nodes)

    out_deg: dict[str, int] = {node: graph.out_degree(node) for node in graph.nodes}
    in_deg: dict[str, int] = {node: graph.in_degree(node) for node in graph.nodes}

    s1: list[str] = []
    s2: list[str] = []

    def take(node: str) -> None:
        del active[node]
        for succ in graph.successors(node):
            if succ in active:
                in_deg[succ] -= 1
        for pred in graph.predecessors(node):
            if pred in active:
                out_deg[pred] -= 1

    while active:
        changed = True
        while changed:
            sinks = [n for n in active if out_deg[n] == 0]
            changed = bool(sinks)
            for sink in sinks:
                take(sink)
                s2.append(sink)

        changed = True
        while changed:
            sources = [n for n in active if in_deg[n] == 0]
            changed = bool(sources)
            for source in sources:
                take(source)
                s1.append(source)

        if active:
            best = max(active, key=lambda n: out_deg[n] - in_deg[n])
            take(best)
            s1.append(best)

    s2.reverse()
    s1.extend(s2)
    return s1


def remove_cycles(graph: nx.DiGraph) -> tuple[nx.DiGraph, set[tuple[str, str]]]:
    """Copy ``graph`` with back-edges reversed and self-loops removed.

    Returns the DAG and the set of reversed (src, tgt) pairs, identified by
    their direction in the ORIGINAL graph.
    """
    if graph.number_of_nodes() == 0:
        return nx.DiGraph(), set()

    position: dict[str, int] = {node: pos for pos, node in enumerate(greedy_fas_ordering(graph))}

    reversed_edges: set[tuple[str, str]] = {
        (src, tgt) for src, tgt in graph.edges() if src == tgt or position[src] > position[tgt]
    }

    dag: nx.DiGraph = nx.DiGraph()
    for node_id, attrs in graph.nodes(data=True):
        dag.add_node(node_id, **attrs)

    for src, tgt, edge_attrs in graph.edges(data=True):
        if src == tgt:
            continue
        if (src, tgt) in reversed_edges:
            dag.add_edge(tgt, src, **edge_attrs)
        else:
            dag.add_edge(src, tgt, **edge_attrs)

    return dag, reversed_edges


# ─── Layer Assignment ─────────────────────────────────────────────────────────


class LayerAssignment:
    """Each node of a DAG assigned a layer (rank); layer 0 comes first.

    Attributes:
        layers: Maps node id → layer index.
        layer_count: Total number of layers.
    """

    def __init__(self, layers: dict[str, int], layer_count: int) -> None:
        self.layers = layers
        self.layer_count = layer_count

    @classmethod
    def assign(cls, dag: nx.DiGraph) -> LayerAssignment:
        """Longest-path layering: rank[v] = max(rank[u] + 1) over edges u→v."""
        layers: dict[str, int] = {node_id: 0 for node_id in dag.nodes}
        for node_id in nx.topological_sort(dag):
            for succ in dag.successors(node_id):
                if layers[succ] < layers[node_id] + 1:
                    layers[succ] = layers[node_id] + 1

        layer_count = (max(layers.values()) + 1) if layers else 0
        return cls(layers=layers, layer_count=layer_count)


# ─── Dummy Node Insertion ──────────────────────────────────────────────────────


@dataclass
class DummyEdge:
    """A long edge replaced by a chain of dummy nodes, one per skipped layer."""

    original_src: str
    original_tgt: str
    dummy_ids: list[str]


@dataclass
class AugmentedGraph:
    """A DAG in which every edge connects adjacent layers."""

    graph: nx.DiGraph
    layers: dict[str, int]
    layer_count: int
    dummy_edges: list[DummyEdge]


def dummy_node_id(src_id: str, tgt_id: str, index: int) -> str:
    """Dummy ids derive from the edge they stand in for, so they repeat across runs."""
    return f"{DUMMY_PREFIX}{src_id}->{tgt_id}_{index}"


def insert_dummy_nodes(dag: nx.DiGraph, la: LayerAssignment) -> AugmentedGraph:
    """Replace each edge u → v with layer[v] - layer[u] > 1 by the chain
    u → d₁ → … → dₖ → v, where dᵢ lives in layer ``layer[u] + i``.

    Dummy nodes have zero size and carry ``dummy=True``.
    """
    g: nx.DiGraph = nx.DiGraph()
    for node_id, attrs in dag.nodes(data=True):
        g.add_node(node_id, **attrs)

    layers: dict[str, int] = dict(la.layers)
    dummy_edges: list[DummyEdge] = []

    for src_id, tgt_id in list(dag.edges()):
        src_layer = layers[src_id]
        span = layers[tgt_id] - src_layer

        if span <= 1:
            g.add_edge(src_id, tgt_id)
            continue

        dummy_ids: list[str] = []
        chain_prev = src_id
        for i in range(span - 1):
            dummy_id = dummy_node_id(src_id, tgt_id, i)
            g.add_node(dummy_id, width=0.0, height=0.0, dummy=True)
            layers[dummy_id] = src_layer + i + 1
            dummy_ids.append(dummy_id)
            g.add_edge(chain_prev, dummy_id)
            chain_prev = dummy_id
        g.add_edge(chain_prev, tgt_id)

        dummy_edges.append(DummyEdge(original_src=src_id, original_tgt=tgt_id, dummy_ids=dummy_ids))

    layer_count = (max(layers.values()) + 1) if layers else 0
    return AugmentedGraph(graph=g, layers=layers, layer_count=layer_count, dummy_edges=dummy_edges)


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────


def _anchor_key(node_id: str, anchors: dict[str, float]) -> tuple[int, float, str]:
    # Previously placed nodes keep their old order; new ones follow by id.
    if node_id in anchors:
        return (0, anchors[node_id], node_id)
    return (1, 0.0, node_id)


def initial_ordering(aug: AugmentedGraph, anchors: dict[str, float] | None = None) -> list[list[str]]:
    """Group nodes by layer, ordered by anchor position then id."""
    anchors = anchors or {}
    ordering: list[list[str]] = [[] for _ in range(aug.layer_count)]
    for node_id in sorted(aug.layers, key=lambda n: _anchor_key(n, anchors)):
        ordering[aug.layers[node_id]].append(node_id)
    return ordering


def minimise_crossings(aug: AugmentedGraph, anchors: dict[str, float] | None = None) -> list[list[str]]:
    """Minimise edge crossings using the barycenter heuristic.

    Starts from ``initial_ordering`` and runs top-down + bottom-up sweeps.
    A sweep is kept only if it strictly lowers the crossing count, so an
    ordering seeded from a previous layout survives unless it can be improved.

    Returns one list of node ids per layer.
    """
    layer_count = aug.layer_count
    ordering = initial_ordering(aug, anchors)

    best_ordering = [list(layer) for layer in ordering]
    best = count_crossings(ordering, aug.graph)

    for _pass in range(MAX_PASSES):
        if best == 0:
            break

        # Top-down sweep: predecessor positions as barycenter weights.
        for layer_idx in range(1, layer_count):
            prev: dict[str, float] = {nid: float(i) for i, nid in enumerate(ordering[layer_idx - 1])}
            ordering[layer_idx].sort(key=lambda a, p=prev: _barycenter(a, aug.graph, p, "incoming"))

        # Bottom-up sweep: successor positions as barycenter weights.
        for layer_idx in range(layer_count - 2, -1, -1):
            nxt: dict[str, float] = {nid: float(i) for i, nid in enumerate(ordering[layer_idx + 1])}
            ordering[layer_idx].sort(key=lambda a, n=nxt: _barycenter(a, aug.graph, n, "outgoing"))

        new = count_crossings(ordering, aug.graph)
        if new >= best:
            break
        best = new
        best_ordering = [list(layer) for layer in ordering]

    return best_ordering


def _barycenter(
    node_id: str,
    graph: nx.DiGraph,
    neighbor_pos: dict[str, float],
    direction: str,
) -> float:
    """Average position of a node's neighbours in the adjacent layer.

    direction: "incoming" to look at predecessors, "outgoing" for successors.
    Returns float('inf') if the node has no neighbours there.
    """
    if node_id not in graph:
        return float("inf")

    neighbors = graph.predecessors(node_id) if direction == "incoming" else graph.successors(node_id)
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return float("inf")
    return sum(positions) / len(positions)


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive layers (inversion count)."""
    total = 0
    for l_idx in range(len(ordering) - 1):
        tgt_pos: dict[str, int] = {nid: i for i, nid in enumerate(ordering[l_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[l_idx]):
            if src_id in graph:
                for nb in graph.successors(src_id):
                    if nb in tgt_pos:
                        edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


def assign_coordinates(
    ordering: list[list[str]],
    aug: AugmentedGraph,
    node_sep: float,
    rank_sep: float,
    rankdir: str = "TB",
) -> tuple[dict[str, Point], Bounds]:
    """Assign a centre point to every node of the augmented graph.

    Layout is computed top-down; for ``LR`` node width and height are swapped
    beforehand and the result transposed (x↔y) afterwards. Each layer is
    centred on the widest layer, then shifted by small amounts to line up with
    its parents and children.

    Returns the centres and the bounds of the whole arrangement.
    """
    is_lr = rankdir == "LR"

    def node_dims(node_id: str) -> tuple[float, float]:
        attrs = aug.graph.nodes[node_id]
        width = float(attrs.get("width", 0.0))
        height = float(attrs.get("height", 0.0))
        return (height, width) if is_lr else (width, height)

    if not ordering:
        return {}, Bounds(width=0.0, height=0.0)

    layer_of: dict[str, int] = {nid: idx for idx, layer in enumerate(ordering) for nid in layer}

    # Layer tops from the tallest node in each layer.
    layer_max_height = [max((node_dims(nid)[1] for nid in layer), default=0.0) for layer in ordering]
    layer_y: list[float] = []
    y = 0.0
    for h in layer_max_height:
        layer_y.append(y)
        y += h + rank_sep
    total_height = y - rank_sep

    layer_total_widths = [
        sum(node_dims(nid)[0] for nid in layer) + max(len(layer) - 1, 0) * node_sep for layer in ordering
    ]
    max_layer_w = max(layer_total_widths, default=0.0)

    left: dict[str, float] = {}
    for layer_idx, layer_nodes in enumerate(ordering):
        x = (max_layer_w - layer_total_widths[layer_idx]) / 2
        for node_id in layer_nodes:
            left[node_id] = x
            x += node_dims(node_id)[0] + node_sep

    def center_x(node_id: str) -> float:
        return left[node_id] + node_dims(node_id)[0] / 2

    def is_dummy(node_id: str) -> bool:
        return bool(aug.graph.nodes[node_id].get("dummy"))

    def shift_layer(layer_idx: int, neighbours_of, neighbour_layer: int) -> None:
        own: list[float] = []
        other: list[float] = []
        for node_id in ordering[layer_idx]:
            for nb in neighbours_of(node_id):
                if not is_dummy(nb) and layer_of.get(nb) == neighbour_layer:
                    own.append(center_x(node_id))
                    other.append(center_x(nb))
        if not own:
            return
        shift = sum(other) / len(other) - sum(own) / len(own)
        if abs(shift) > node_sep:
            return
        for node_id in ordering[layer_idx]:
            left[node_id] += shift

    # Top-down: align each layer under its parents.
    for layer_idx in range(1, len(ordering)):
        shift_layer(layer_idx, aug.graph.predecessors, layer_idx - 1)

    # Bottom-up: align each layer over its children.
    for layer_idx in range(len(ordering) - 2, -1, -1):
        shift_layer(layer_idx, aug.graph.successors, layer_idx + 1)

    # Normalize: leftmost node starts at 0.
    min_x = min(left.values(), default=0.0)
    for node_id in left:
        left[node_id] -= min_x
    total_width = max((left[nid] + node_dims(nid)[0] for nid in left), default=0.0)

    centres: dict[str, Point] = {}
    for node_id, layer_idx in layer_of.items():
        cx = center_x(node_id)
        cy = layer_y[layer_idx] + layer_max_height[layer_idx] / 2
        centres[node_id] = Point(x=cy, y=cx) if is_lr else Point(x=cx, y=cy)

    if is_lr:
        return centres, Bounds(width=total_height, height=total_width)
    return centres, Bounds(width=total_width, height=total_height)


# ─── Engine ───────────────────────────────────────────────────────────────────


class SugiyamaEngine:
    """Default layered layout engine."""

    def layout(self, graph: nx.DiGraph) -> Bounds:
        settings = graph.graph
        node_sep = float(settings.get("nodesep", NODE_SEP))
        rank_sep = float(settings.get("ranksep", RANK_SEP))
        rankdir = settings.get("rankdir", "TB")
        if rankdir not in RANKDIRS:
            raise ValueError(f"unknown rankdir: {rankdir!r}")

        started = time.perf_counter()

        # Cross-axis position from the previous run anchors the ordering.
        anchor_attr = "y" if rankdir == "LR" else "x"
        anchors: dict[str, float] = dict(settings.get("dummy_anchors", {}))
        for node_id, attrs in graph.nodes(data=True):
            if attrs.get(anchor_attr) is not None:
                anchors[node_id] = float(attrs[anchor_attr])

        dag, reversed_edges = remove_cycles(graph)
        la = LayerAssignment.assign(dag)
        aug = insert_dummy_nodes(dag, la)
        ordering = minimise_crossings(aug, anchors)
        centres, bounds = assign_coordinates(ordering, aug, node_sep, rank_sep, rankdir)

        for node_id, attrs in graph.nodes(data=True):
            centre = centres[node_id]
            attrs["x"] = centre.x
            attrs["y"] = centre.y
            attrs["layer"] = la.layers[node_id]

        settings["dummy_anchors"] = {
            dummy_id: getattr(centres[dummy_id], anchor_attr)
            for de in aug.dummy_edges
            for dummy_id in de.dummy_ids
        }
        settings["width"] = bounds.width
        settings["height"] = bounds.height

        logger.debug(
            f"Laid out {graph.number_of_nodes()} nodes / {graph.number_of_edges()} edges "
            f"in {la.layer_count} layers ({len(reversed_edges)} reversed) "
            f"-> {bounds.width:.1f}x{bounds.height:.1f} in {(time.perf_counter() - started) * 1000:.1f}ms"
        )
        return bounds
