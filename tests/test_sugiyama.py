"""Tests for engine/sugiyama.py — cycle removal, layering, dummy nodes,
crossing minimization, coordinate assignment and the engine wrapper.
"""

from __future__ import annotations

import networkx as nx
import pytest

from topology_layout.engine.sugiyama import (
    DUMMY_PREFIX,
    AugmentedGraph,
    LayerAssignment,
    SugiyamaEngine,
    assign_coordinates,
    count_crossings,
    dummy_node_id,
    greedy_fas_ordering,
    initial_ordering,
    insert_dummy_nodes,
    minimise_crossings,
    remove_cycles,
)
from topology_layout.types import Bounds

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_graph(*edges: tuple[str, str], size: float = 1.0) -> nx.DiGraph:
    """Build a DiGraph from (src, tgt) pairs; every node gets a square size hint."""
    g: nx.DiGraph = nx.DiGraph()
    for src, tgt in edges:
        for node_id in (src, tgt):
            if node_id not in g:
                g.add_node(node_id, width=size, height=size)
        g.add_edge(src, tgt)
    return g


def make_graph_nodes(*nodes: str) -> nx.DiGraph:
    """Build a DiGraph with only nodes (no edges)."""
    g: nx.DiGraph = nx.DiGraph()
    for node in nodes:
        g.add_node(node, width=1.0, height=1.0)
    return g


def make_augmented_graph(
    edges: list[tuple[str, str]],
    layers: dict[str, int],
) -> AugmentedGraph:
    """Build a minimal AugmentedGraph from (src, tgt) edges and explicit layers."""
    g: nx.DiGraph = nx.DiGraph()
    for nid in sorted(set(layers) | {n for e in edges for n in e}):
        g.add_node(nid, width=1.0, height=1.0)
    for src, tgt in edges:
        g.add_edge(src, tgt)

    layer_count = (max(layers.values()) + 1) if layers else 0
    return AugmentedGraph(graph=g, layers=layers, layer_count=layer_count, dummy_edges=[])


def fork_graph() -> nx.DiGraph:
    """A → B, A → C with unit-size nodes and default spacing 3 / 5."""
    g = make_graph(("A", "B"), ("A", "C"))
    g.graph.update(nodesep=3.0, ranksep=5.0)
    return g


# ─── Cycle Removal ────────────────────────────────────────────────────────────


class TestCycleRemoval:
    def test_dag_has_no_reversed_edges(self):
        """A → B → C (no cycles) — zero reversed edges."""
        dag, reversed_edges = remove_cycles(make_graph(("A", "B"), ("B", "C")))
        assert reversed_edges == set()
        assert nx.is_directed_acyclic_graph(dag)

    def test_single_cycle_reversed(self):
        """A → B → A — exactly one edge reversed, result is a DAG."""
        dag, reversed_edges = remove_cycles(make_graph(("A", "B"), ("B", "A")))
        assert len(reversed_edges) == 1
        assert nx.is_directed_acyclic_graph(dag)

    def test_self_loop_removed(self):
        """A → A — counted as reversed and dropped from the DAG."""
        dag, reversed_edges = remove_cycles(make_graph(("A", "A")))
        assert reversed_edges == {("A", "A")}
        assert dag.number_of_edges() == 0
        assert "A" in dag

    def test_complex_cycle(self):
        """A → B → C → A plus D → B — result must be a DAG."""
        g = make_graph(("A", "B"), ("B", "C"), ("C", "A"), ("D", "B"))
        dag, reversed_edges = remove_cycles(g)
        assert nx.is_directed_acyclic_graph(dag)
        assert len(reversed_edges) >= 1

    def test_node_attributes_copied(self):
        """Size hints survive into the DAG copy, the input is not modified."""
        g = make_graph(("A", "B"), ("B", "A"), size=7.0)
        dag, _ = remove_cycles(g)
        assert dag.nodes["A"]["width"] == 7.0
        assert g.has_edge("A", "B") and g.has_edge("B", "A")

    def test_empty_graph(self):
        """Empty graph — empty DAG, nothing reversed."""
        dag, reversed_edges = remove_cycles(nx.DiGraph())
        assert dag.number_of_nodes() == 0
        assert reversed_edges == set()


class TestGreedyFasOrdering:
    def test_chain_ordering(self):
        """A → B → C — ordering follows the chain."""
        assert greedy_fas_ordering(make_graph(("A", "B"), ("B", "C"))) == ["A", "B", "C"]

    def test_single_node(self):
        """Single node — ordering has just that node."""
        assert greedy_fas_ordering(make_graph_nodes("A")) == ["A"]

    def test_empty_graph(self):
        """Empty graph — ordering is empty."""
        assert greedy_fas_ordering(nx.DiGraph()) == []

    def test_all_nodes_present(self):
        """A 3-cycle still yields every node exactly once."""
        ordering = greedy_fas_ordering(make_graph(("A", "B"), ("B", "C"), ("C", "A")))
        assert sorted(ordering) == ["A", "B", "C"]

    def test_repeatable(self):
        """Same graph, same ordering."""
        g = make_graph(("A", "B"), ("B", "C"), ("C", "A"), ("D", "A"))
        assert greedy_fas_ordering(g) == greedy_fas_ordering(g.copy())


# ─── Layer Assignment ─────────────────────────────────────────────────────────


class TestLayerAssignment:
    def test_chain(self):
        """A → B → C — layers 0, 1, 2."""
        la = LayerAssignment.assign(make_graph(("A", "B"), ("B", "C")))
        assert la.layers == {"A": 0, "B": 1, "C": 2}
        assert la.layer_count == 3

    def test_longest_path_wins(self):
        """A → B → C plus A → C — C sits below B, not next to it."""
        la = LayerAssignment.assign(make_graph(("A", "B"), ("B", "C"), ("A", "C")))
        assert la.layers["C"] == 2

    def test_isolated_nodes_layer_zero(self):
        """Nodes without edges all go into layer 0."""
        la = LayerAssignment.assign(make_graph_nodes("A", "B"))
        assert la.layers == {"A": 0, "B": 0}
        assert la.layer_count == 1

    def test_empty(self):
        la = LayerAssignment.assign(nx.DiGraph())
        assert la.layers == {}
        assert la.layer_count == 0


# ─── Dummy Nodes ──────────────────────────────────────────────────────────────


class TestInsertDummyNodes:
    def test_long_edge_split(self):
        """A → B → C plus A → C — A → C gets one dummy in layer 1."""
        dag = make_graph(("A", "B"), ("B", "C"), ("A", "C"))
        aug = insert_dummy_nodes(dag, LayerAssignment.assign(dag))

        assert len(aug.dummy_edges) == 1
        dummy = aug.dummy_edges[0].dummy_ids[0]
        assert dummy == dummy_node_id("A", "C", 0)
        assert dummy.startswith(DUMMY_PREFIX)
        assert aug.layers[dummy] == 1
        assert aug.graph.nodes[dummy]["dummy"] is True
        assert aug.graph.has_edge("A", dummy) and aug.graph.has_edge(dummy, "C")
        assert not aug.graph.has_edge("A", "C")

    def test_adjacent_edges_untouched(self):
        """Edges between adjacent layers are copied as-is."""
        dag = make_graph(("A", "B"))
        aug = insert_dummy_nodes(dag, LayerAssignment.assign(dag))
        assert aug.dummy_edges == []
        assert set(aug.graph.edges()) == {("A", "B")}

    def test_every_edge_spans_one_layer(self):
        """After insertion no edge skips a layer."""
        dag = make_graph(("A", "B"), ("B", "C"), ("C", "D"), ("A", "D"))
        aug = insert_dummy_nodes(dag, LayerAssignment.assign(dag))
        for src, tgt in aug.graph.edges():
            assert aug.layers[tgt] - aug.layers[src] == 1


# ─── Crossings ────────────────────────────────────────────────────────────────


class TestCountCrossings:
    def test_no_crossings_parallel(self):
        """A→C, B→D in natural order — zero crossings."""
        aug = make_augmented_graph([("A", "C"), ("B", "D")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert count_crossings([["A", "B"], ["C", "D"]], aug.graph) == 0

    def test_one_crossing(self):
        """A→D, B→C in natural order — one crossing."""
        aug = make_augmented_graph([("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert count_crossings([["A", "B"], ["C", "D"]], aug.graph) == 1
        assert count_crossings([["A", "B"], ["D", "C"]], aug.graph) == 0

    def test_empty(self):
        assert count_crossings([], nx.DiGraph()) == 0


class TestMinimiseCrossings:
    CROSSED = ([("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})

    def test_removes_crossing(self):
        """Alphabetical start has one crossing; the sweep fixes it."""
        aug = make_augmented_graph(*self.CROSSED)
        result = minimise_crossings(aug)
        assert count_crossings(result, aug.graph) == 0
        assert result == [["A", "B"], ["D", "C"]]

    def test_returns_all_nodes_in_their_layers(self):
        """Every node appears once, in its assigned layer."""
        layers = {"A": 0, "B": 1, "C": 1, "D": 2}
        aug = make_augmented_graph([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")], layers)
        result = minimise_crossings(aug)
        assert len(result) == aug.layer_count
        for node_id, layer in layers.items():
            assert node_id in result[layer]
        flat = [nid for layer in result for nid in layer]
        assert len(flat) == len(set(flat))

    def test_anchor_order_kept_when_crossing_free(self):
        """Anchors that already avoid crossings are not reshuffled."""
        aug = make_augmented_graph(*self.CROSSED)
        anchors = {"B": 0.0, "A": 10.0, "C": 0.0, "D": 10.0}
        assert minimise_crossings(aug, anchors) == [["B", "A"], ["C", "D"]]

    def test_anchor_order_improved_when_crossing(self):
        """Anchors that cause a crossing are still improved upon."""
        aug = make_augmented_graph(*self.CROSSED)
        anchors = {"A": 0.0, "B": 10.0, "C": 0.0, "D": 10.0}
        assert count_crossings(minimise_crossings(aug, anchors), aug.graph) == 0

    def test_new_nodes_follow_anchored_ones(self):
        """Unanchored nodes are placed after anchored ones, by id."""
        aug = make_augmented_graph([], {"A": 0, "B": 0, "Z": 0})
        assert initial_ordering(aug, {"Z": 1.0}) == [["Z", "A", "B"]]

    def test_empty_graph(self):
        aug = AugmentedGraph(graph=nx.DiGraph(), layers={}, layer_count=0, dummy_edges=[])
        assert minimise_crossings(aug) == []

    def test_single_node(self):
        assert minimise_crossings(make_augmented_graph([], {"A": 0})) == [["A"]]


# ─── Coordinate Assignment ────────────────────────────────────────────────────


class TestAssignCoordinates:
    def fork(self) -> AugmentedGraph:
        return make_augmented_graph([("A", "B"), ("A", "C")], {"A": 0, "B": 1, "C": 1})

    def test_top_bottom(self):
        """Parent centred over its two children; bounds cover all nodes."""
        centres, bounds = assign_coordinates([["A"], ["B", "C"]], self.fork(), node_sep=3.0, rank_sep=5.0)

        assert bounds == Bounds(width=5.0, height=7.0)
        assert (centres["A"].x, centres["A"].y) == pytest.approx((2.5, 0.5))
        assert (centres["B"].x, centres["B"].y) == pytest.approx((0.5, 6.5))
        assert (centres["C"].x, centres["C"].y) == pytest.approx((4.5, 6.5))

    def test_left_right_transposes(self):
        """LR lays ranks along x and swaps the bounds."""
        centres, bounds = assign_coordinates([["A"], ["B", "C"]], self.fork(), 3.0, 5.0, rankdir="LR")

        assert bounds == Bounds(width=7.0, height=5.0)
        assert (centres["A"].x, centres["A"].y) == pytest.approx((0.5, 2.5))
        assert (centres["B"].x, centres["B"].y) == pytest.approx((6.5, 0.5))
        assert (centres["C"].x, centres["C"].y) == pytest.approx((6.5, 4.5))

    def test_same_layer_nodes_do_not_overlap(self):
        """Nodes within a layer are at least node_sep apart edge to edge."""
        aug = make_augmented_graph([], {"A": 0, "B": 0, "C": 0})
        centres, _ = assign_coordinates([["A", "B", "C"]], aug, node_sep=2.0, rank_sep=1.0)
        xs = [centres[n].x for n in ("A", "B", "C")]
        assert xs[1] - xs[0] == pytest.approx(3.0)
        assert xs[2] - xs[1] == pytest.approx(3.0)

    def test_empty(self):
        centres, bounds = assign_coordinates([], make_augmented_graph([], {}), 3.0, 5.0)
        assert centres == {}
        assert bounds == Bounds(width=0.0, height=0.0)


# ─── Engine ───────────────────────────────────────────────────────────────────


class TestSugiyamaEngine:
    def test_writes_positions_and_bounds(self):
        """x/y land on the node attributes and width/height on the graph."""
        g = fork_graph()
        bounds = SugiyamaEngine().layout(g)

        assert bounds == Bounds(width=5.0, height=7.0)
        assert g.graph["width"] == 5.0
        assert g.graph["height"] == 7.0
        assert (g.nodes["A"]["x"], g.nodes["A"]["y"]) == pytest.approx((2.5, 0.5))
        assert g.nodes["B"]["layer"] == 1

    def test_repeat_run_is_stable(self):
        """A second run on the same graph gives the same positions."""
        g = make_graph(("A", "B"), ("A", "C"), ("B", "D"), ("C", "D"), ("A", "D"), ("E", "C"))
        engine = SugiyamaEngine()
        engine.layout(g)
        first = {n: (a["x"], a["y"]) for n, a in g.nodes(data=True)}
        engine.layout(g)
        second = {n: (a["x"], a["y"]) for n, a in g.nodes(data=True)}
        assert first == second

    def test_previous_positions_anchor_order(self):
        """Prior x positions decide the order within a layer."""
        g = fork_graph()
        g.nodes["A"]["x"] = 5.0
        g.nodes["B"]["x"] = 10.0
        g.nodes["C"]["x"] = 0.0
        SugiyamaEngine().layout(g)
        assert g.nodes["C"]["x"] < g.nodes["B"]["x"]

    def test_dummy_positions_kept_on_graph(self):
        """Long edges leave their dummy positions behind for the next run."""
        g = make_graph(("A", "B"), ("B", "C"), ("A", "C"))
        SugiyamaEngine().layout(g)
        assert set(g.graph["dummy_anchors"]) == {dummy_node_id("A", "C", 0)}

    def test_cycle_and_self_loop(self):
        """Cycles and self-loops still get every node positioned."""
        g = make_graph(("A", "B"), ("B", "A"), ("B", "B"))
        SugiyamaEngine().layout(g)
        assert g.nodes["A"]["y"] != g.nodes["B"]["y"]

    def test_empty_graph(self):
        g: nx.DiGraph = nx.DiGraph()
        assert SugiyamaEngine().layout(g) == Bounds(width=0.0, height=0.0)

    def test_rejects_unknown_rankdir(self):
        g = fork_graph()
        g.graph["rankdir"] = "BT"
        with pytest.raises(ValueError):
            SugiyamaEngine().layout(g)
