"""Base layout engine protocol."""

from __future__ import annotations

from typing import Protocol

import networkx as nx

from topology_layout.types import Bounds


class LayoutEngine(Protocol):
    """Protocol that all layout engines must implement.

    An engine reads ``width``/``height`` from each node's attributes and
    ``nodesep``, ``ranksep`` and ``rankdir`` from ``graph.graph``. It writes the
    centre of every node as ``x``/``y`` node attributes, stores the overall
    ``width``/``height`` on ``graph.graph`` and returns them as ``Bounds``.
    """

    def layout(self, graph: nx.DiGraph) -> Bounds:
        """Position every node of ``graph`` in place."""
        ...
