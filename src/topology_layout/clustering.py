"""Node clustering: turn topology nodes into layout graph nodes.

Nodes without a rank become layout nodes of unit size under their own id.
Nodes sharing a rank collapse into one cluster node ``<rank_prefix><rank>``
sized ``scale(sqrt(k))`` for ``k`` members; the members are expanded back into
a circle around the cluster's position after layout.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import networkx as nx

from topology_layout.types import DEFAULT_OPTIONS, LayoutOptions, Node

logger = logging.getLogger(__name__)


@dataclass
class Clustering:
    """Outcome of clustering one call's nodes.

    Attributes:
        rank_nodes: Member node id → cluster id.
        clusters: Cluster id → member nodes, in input order.
        layout_ids: Every layout node id this call needs, in grouping order.
    """

    rank_nodes: dict[str, str] = field(default_factory=dict)
    clusters: dict[str, list[Node]] = field(default_factory=dict)
    layout_ids: list[str] = field(default_factory=list)


def group_by_rank(nodes: Iterable[Node]) -> dict[str | None, list[Node]]:
    """Group nodes by rank, keeping first-appearance order. ``""`` folds into ``None``."""
    groups: dict[str | None, list[Node]] = {}
    for node in nodes:
        groups.setdefault(node.rank or None, []).append(node)
    return groups


def cluster_size(scale: Callable[[float], float], member_count: int) -> float:
    return scale(math.sqrt(member_count))


def cluster_nodes(
    graph: nx.DiGraph,
    nodes: Iterable[Node],
    scale: Callable[[float], float],
    options: LayoutOptions = DEFAULT_OPTIONS,
) -> Clustering:
    """Ensure a layout node exists for every unranked node and every rank.

    Existing layout nodes are reused so the engine can anchor on their previous
    positions. A cluster's member list is replaced on every call; its size is
    recomputed only when ``options.refresh_cluster_size`` is set.
    """
    result = Clustering()

    for rank, members in group_by_rank(nodes).items():
        if rank is None:
            unit = scale(1)
            for node in members:
                if node.id not in graph:
                    graph.add_node(node.id, id=node.id, width=unit, height=unit)
                result.layout_ids.append(node.id)
            continue

        cluster_id = f"{options.rank_prefix}{rank}"
        size = cluster_size(scale, len(members))
        if cluster_id not in graph:
            graph.add_node(cluster_id, id=cluster_id, width=size, height=size)
        elif options.refresh_cluster_size:
            graph.nodes[cluster_id].update(width=size, height=size)
        graph.nodes[cluster_id]["members"] = list(members)

        result.clusters[cluster_id] = list(members)
        result.layout_ids.append(cluster_id)
        for node in members:
            result.rank_nodes[node.id] = cluster_id

    return result


def prune_stale_nodes(graph: nx.DiGraph, layout_ids: Iterable[str]) -> list[str]:
    """Remove layout nodes (and their edges) that this call did not produce."""
    wanted = set(layout_ids)
    stale = [node_id for node_id in graph.nodes if node_id not in wanted]
    if stale:
        graph.remove_nodes_from(stale)
        logger.debug(f"Pruned {len(stale)} stale layout node(s): {stale}")
    return stale
