"""Layout engines."""

from __future__ import annotations

from topology_layout.engine.base import LayoutEngine
from topology_layout.engine.sugiyama import SugiyamaEngine

__all__ = ["LayoutEngine", "SugiyamaEngine"]
