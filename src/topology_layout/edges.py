"""Edge projection onto the layout graph, and default edge paths."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping

import networkx as nx

from topology_layout.types import Edge, Point

logger = logging.getLogger(__name__)


def resolve_endpoint(node_id: str, rank_nodes: Mapping[str, str]) -> str:
    """Layout node id for a topology node: its cluster if it has one, else itself."""
    return rank_nodes.get(node_id, node_id)


def project_edges(
    graph: nx.DiGraph,
    edges: Iterable[Edge],
    rank_nodes: Mapping[str, str],
    node_ids: Collection[str],
) -> dict[tuple[str, str], str]:
    """Add one layout edge per distinct projected (source, target) pair.

    Returns the projected pairs mapped to the id of the first topology edge
    that produced them. Edges referencing a node outside ``node_ids`` are
    skipped. Edges whose endpoints land on the same layout node (inside one
    cluster, or a self-loop) are internal and not added.
    """
    pairs: dict[tuple[str, str], str] = {}

    for edge in edges:
        src, tgt = edge.source.id, edge.target.id
        if src not in node_ids or tgt not in node_ids:
            logger.warning(f"Skipping edge {edge.id!r}: endpoint not in node set ({src!r} -> {tgt!r})")
            continue

        actual_src = resolve_endpoint(src, rank_nodes)
        actual_tgt = resolve_endpoint(tgt, rank_nodes)
        if actual_src == actual_tgt:
            continue

        key = (actual_src, actual_tgt)
        if key in pairs:
            continue
        pairs[key] = edge.id

        if graph.has_edge(actual_src, actual_tgt):
            graph.edges[actual_src, actual_tgt]["id"] = edge.id
        else:
            graph.add_edge(actual_src, actual_tgt, id=edge.id)

    return pairs


def prune_stale_edges(graph: nx.DiGraph, pairs: Collection[tuple[str, str]]) -> list[tuple[str, str]]:
    """Remove layout edges that were not projected this call."""
    stale = [(u, v) for u, v in graph.edges() if (u, v) not in pairs]
    if stale:
        graph.remove_edges_from(stale)
        logger.debug(f"Pruned {len(stale)} stale layout edge(s)")
    return stale


def finalize_edge_points(edges: Iterable[Edge], positions: Mapping[str, Point]) -> dict[str, list[Point]]:
    """Straight source → target paths for edges that have no ``points`` yet.

    Must run after every node position is final.
    """
    result: dict[str, list[Point]] = {}
    for edge in edges:
        if edge.points is not None:
            continue
        src = positions.get(edge.source.id)
        tgt = positions.get(edge.target.id)
        if src is None or tgt is None:
            continue
        result[edge.id] = [Point(x=src.x, y=src.y), Point(x=tgt.x, y=tgt.y)]
    return result
