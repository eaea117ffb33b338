"""Topology layout pipeline.

One call per redraw:

  validate size → cluster nodes → project edges → run engine
  → centre & back-project → finalize edge points

``layout_topology`` returns a ``LayoutResult`` and leaves caller objects
untouched; ``do_layout`` also applies the result onto them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

from topology_layout.cache import LayoutGraphCache
from topology_layout.clustering import cluster_nodes, prune_stale_nodes
from topology_layout.edges import finalize_edge_points, project_edges, prune_stale_edges
from topology_layout.engine import LayoutEngine, SugiyamaEngine
from topology_layout.projection import back_project, center_offset
from topology_layout.types import DEFAULT_OPTIONS, Edge, LayoutOptions, LayoutResult, Margins, Node

logger = logging.getLogger(__name__)

Scale = Callable[[float], float]
MarginsLike = Margins | Mapping[str, float] | None


def _node_list(nodes: Iterable[Node] | Mapping[str, Node]) -> list[Node]:
    if isinstance(nodes, Mapping):
        return list(nodes.values())
    return list(nodes)


def layout_topology(
    nodes: Iterable[Node] | Mapping[str, Node],
    edges: Iterable[Edge],
    width: float,
    height: float,
    scale: Scale,
    margins: MarginsLike,
    topology_id: str,
    cache: LayoutGraphCache,
    engine: LayoutEngine | None = None,
    options: LayoutOptions = DEFAULT_OPTIONS,
) -> LayoutResult | None:
    """Compute positions for ``nodes`` and paths for ``edges``.

    Args:
        nodes: Topology nodes, as a sequence or a mapping of id → node.
        edges: Topology edges; their endpoints must be among ``nodes``.
        width: Viewport width.
        height: Viewport height.
        scale: Converts abstract size units to viewport units.
        margins: Top/left margins.
        topology_id: Key of the cached layout graph to reuse.
        cache: Cache holding one layout graph per topology.
        engine: Layout engine; ``SugiyamaEngine`` when omitted.
        options: Layout options.

    Returns:
        The layout result, or None when there are more than
        ``options.max_nodes`` nodes. In that case the cache is not touched.
    """
    node_list = _node_list(nodes)
    edge_list = list(edges)

    if len(node_list) > options.max_nodes:
        logger.warning(f"Too many nodes for graph layout engine. Limit: {options.max_nodes} (got {len(node_list)})")
        return None

    engine = engine if engine is not None else SugiyamaEngine()
    margins = Margins.coerce(margins)
    node_ids = {node.id for node in node_list}

    with cache.lock(topology_id):
        graph = cache.get_or_create(topology_id)
        graph.graph.update(
            nodesep=scale(options.node_sep),
            ranksep=scale(options.rank_sep),
            rankdir=options.rankdir,
        )

        clustering = cluster_nodes(graph, node_list, scale, options)
        prune_stale_nodes(graph, clustering.layout_ids)

        pairs = project_edges(graph, edge_list, clustering.rank_nodes, node_ids)
        prune_stale_edges(graph, pairs)

        bounds = engine.layout(graph)

        offset = center_offset(bounds, width, height, margins)
        positions = back_project(graph, offset, scale)

    edge_points = finalize_edge_points(edge_list, positions)

    logger.debug(
        f"Topology {topology_id!r}: {len(node_list)} nodes in {graph.number_of_nodes()} layout nodes "
        f"({len(clustering.clusters)} clusters), {graph.number_of_edges()} layout edges, "
        f"{len(edge_points)} default paths"
    )

    return LayoutResult(
        width=bounds.width,
        height=bounds.height,
        positions=positions,
        rank_nodes=dict(clustering.rank_nodes),
        edge_points=edge_points,
    )


def do_layout(
    nodes: Iterable[Node] | Mapping[str, Node],
    edges: Iterable[Edge],
    width: float,
    height: float,
    scale: Scale,
    margins: MarginsLike,
    topology_id: str,
    cache: LayoutGraphCache,
    engine: LayoutEngine | None = None,
    options: LayoutOptions = DEFAULT_OPTIONS,
) -> LayoutResult | None:
    """Like ``layout_topology``, then write the result onto ``nodes`` and ``edges``.

    Nothing is mutated when the layout is skipped.
    """
    if isinstance(nodes, Mapping):
        nodes = list(nodes.values())
    else:
        nodes = list(nodes)
    edges = list(edges)

    result = layout_topology(nodes, edges, width, height, scale, margins, topology_id, cache, engine, options)
    if result is None:
        return None
    result.apply(nodes, edges)
    return result
