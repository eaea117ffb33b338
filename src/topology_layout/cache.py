"""Per-topology layout graph cache.

Consecutive layouts of one topology reuse the same ``networkx.DiGraph`` so the
engine can seed its ordering from the positions each node kept from the last
call, which keeps redraws visually stable. The cache is owned by the caller
(one per session or view) and has explicit teardown via ``evict``/``reset``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator

import networkx as nx

logger = logging.getLogger(__name__)


class LayoutGraphCache:
    """Maps topology id → persistent layout graph."""

    def __init__(self) -> None:
        self._graphs: dict[str, nx.DiGraph] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def get_or_create(self, topology_id: str) -> nx.DiGraph:
        """Return the graph for ``topology_id``, creating an empty one on first use."""
        graph = self._graphs.get(topology_id)
        if graph is None:
            graph = nx.DiGraph()
            self._graphs[topology_id] = graph
            logger.debug(f"Created layout graph for topology {topology_id!r}")
        return graph

    def get(self, topology_id: str) -> nx.DiGraph | None:
        return self._graphs.get(topology_id)

    def lock(self, topology_id: str) -> threading.RLock:
        """Per-topology lock held around cache access and engine invocation."""
        with self._guard:
            lock = self._locks.get(topology_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[topology_id] = lock
            return lock

    def evict(self, topology_id: str) -> bool:
        """Forget one topology's graph. Returns True if there was one."""
        with self.lock(topology_id):
            removed = self._graphs.pop(topology_id, None) is not None
        if removed:
            logger.debug(f"Evicted layout graph for topology {topology_id!r}")
        return removed

    def reset(self) -> None:
        """Forget every cached graph."""
        for topology_id in list(self._graphs):
            self.evict(topology_id)

    def topology_ids(self) -> list[str]:
        return list(self._graphs)

    def __contains__(self, topology_id: object) -> bool:
        return topology_id in self._graphs

    def __len__(self) -> int:
        return len(self._graphs)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._graphs))
