from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from .colors import ColorMap
from .commands import CommandChannel
from .graph_model import GraphModel
from .layout import LayoutEngine, LayoutParams
from .pathfinding import dijkstra
from .scripting import ScriptHost

logger = logging.getLogger(__name__)


class GrephiteCore:
    """Owns the graph and every component that reads or decorates it.

    ``tick`` runs the per-frame pipeline: layout, any pending pathfinding
    request, at most one script step, then the flush of script commands into
    the colour map.

    A node being dragged is held at the pointer and carries no layout
    momentum until it is released.
    """

    def __init__(
        self,
        graph: Optional[GraphModel] = None,
        params: Optional[LayoutParams] = None,
        script_speed: float = 1.0,
    ) -> None:
        self.graph = graph if graph is not None else GraphModel()
        self.layout = LayoutEngine(params)
        self.scripts = ScriptHost(speed=script_speed)
        self.colors = ColorMap()
        self.channel = CommandChannel()
        self.distances: Optional[Dict[int, float]] = None
        self.selected: Optional[int] = None
        self.dragging: Optional[int] = None
        self._drag_pos: Optional[Tuple[float, float]] = None
        self._pending_source: Optional[int] = None
        self._step_requested: bool = False
        for node_id in self.graph.node_ids():
            self.colors.ensure(node_id)

    @property
    def params(self) -> LayoutParams:
        return self.layout.params

    # ---------------- Per-tick pipeline ---------------- #
    def tick(self, dt: float) -> None:
        self.layout.step(self.graph)
        self._pin_dragged()
        if self._pending_source is not None:
            source, self._pending_source = self._pending_source, None
            self.run_pathfinding(source)
        self.scripts.update(dt, manual=self._step_requested)
        self._step_requested = False
        self.scripts.flush(self.channel)
        self.colors.apply_all(self.channel.drain(), self.graph)

    # ---------------- Triggers ---------------- #
    def request_pathfinding(self, node_id: int) -> None:
        self._pending_source = node_id

    def run_pathfinding(self, node_id: int) -> Optional[Dict[int, float]]:
        if node_id not in self.graph:
            logger.warning("pathfinding requested from missing node %s", node_id)
            return None
        self.distances = dijkstra(self.graph, node_id)
        return self.distances

    def clear_distances(self) -> None:
        self.distances = None

    def load_script(self, source: str, name: str = "<script>") -> bool:
        self._step_requested = False
        return self.scripts.load(source, self.graph, name=name)

    def request_step(self) -> None:
        self._step_requested = True

    def select(self, node_id: Optional[int]) -> None:
        self.selected = node_id if node_id is None or node_id in self.graph else None

    # ---------------- Dragging ---------------- #
    def start_drag(self, node_id: int) -> bool:
        if node_id not in self.graph:
            return False
        x, y = self.graph.nodes[node_id].pos
        self.dragging = node_id
        self._drag_pos = (float(x), float(y))
        self.layout.forget(node_id)
        return True

    def drag_to(self, x: float, y: float) -> None:
        if self.dragging is None:
            return
        self._drag_pos = (float(x), float(y))
        self._pin_dragged()

    def end_drag(self) -> None:
        self.dragging = None
        self._drag_pos = None

    def _pin_dragged(self) -> None:
        if self.dragging is None:
            return
        if self.dragging not in self.graph:
            self.end_drag()
            return
        self.graph.move_node(self.dragging, *self._drag_pos)
        self.layout.forget(self.dragging)

    # ---------------- Edit ops ---------------- #
    def add_node(self, x: float, y: float, label: Optional[int] = None) -> int:
        node_id = self.graph.add_node(x, y, label=label)
        self.colors.ensure(node_id)
        return node_id

    def add_edge(self, a: int, b: int, weight: Optional[float] = None) -> Optional[int]:
        return self.graph.add_edge(a, b, weight)

    def delete_node(self, node_id: int) -> List[int]:
        removed = self.graph.remove_node(node_id)
        self.layout.forget(node_id)
        self.colors.forget(node_id)
        if self.distances is not None:
            self.distances.pop(node_id, None)
        if self.selected == node_id:
            self.selected = None
        if self._pending_source == node_id:
            self._pending_source = None
        if self.dragging == node_id:
            self.end_drag()
        return removed

    def delete_edge(self, edge_id: int) -> bool:
        return self.graph.remove_edge(edge_id)

    # ---------------- Rendering views ---------------- #
    def positions(self) -> Tuple[List[int], np.ndarray]:
        ids = self.graph.node_ids()
        return ids, self.graph.positions(ids)

    def node_colors(self, ids: List[int]) -> np.ndarray:
        return self.colors.as_array(ids)
