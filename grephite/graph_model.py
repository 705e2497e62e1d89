from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

EdgeTriple = Tuple[int, int, Optional[float]]


class UnknownNodeError(KeyError):
    """Raised when an operation needs a node that is not (or no longer) in the graph."""


@dataclass
class Node:
    id: int
    label: int
    pos: np.ndarray = field(default_factory=lambda: np.zeros(2, dtype=float))


@dataclass(frozen=True)
class Edge:
    id: int
    a: int
    b: int
    weight: Optional[float] = None

    def other(self, node_id: int) -> int:
        return self.b if node_id == self.a else self.a


# ---------------------------- Graph Model ---------------------------- #


class GraphModel:
    """Undirected, optionally weighted multigraph with a stable node handle per node.

    ``adj`` maps every node to the ordered list of its neighbours, one entry per
    incident edge, and is kept in step with ``edges`` by every edit operation.
    """

    def __init__(self) -> None:
        self.nodes: Dict[int, Node] = {}
        self.edges: Dict[int, Edge] = {}
        self.adj: Dict[int, List[int]] = {}
        self.curr_label: int = 0
        self._node_ids = itertools.count(1)
        self._edge_ids = itertools.count(1)

    # ---- basic ops ---- #
    def add_node(self, x: float, y: float, label: Optional[int] = None) -> int:
        if label is None:
            label = self.curr_label + 1
        self.curr_label = max(self.curr_label, int(label))
        node_id = next(self._node_ids)
        self.nodes[node_id] = Node(node_id, int(label), np.array([x, y], dtype=float))
        self.adj[node_id] = []
        return node_id

    def remove_node(self, node_id: int) -> List[int]:
        if node_id not in self.nodes:
            return []
        incident = [e.id for e in self.edges.values() if node_id in (e.a, e.b)]
        for edge_id in incident:
            self.remove_edge(edge_id)
        del self.adj[node_id]
        del self.nodes[node_id]
        return incident

    def add_edge(self, a: int, b: int, weight: Optional[float] = None) -> Optional[int]:
        if a == b or a not in self.nodes or b not in self.nodes:
            return None
        if weight is not None:
            weight = float(weight)
            if not (math.isfinite(weight) and weight > 0.0):
                raise ValueError(f"edge weight must be positive and finite, got {weight}")
        edge_id = next(self._edge_ids)
        self.edges[edge_id] = Edge(edge_id, a, b, weight)
        self.adj[a].append(b)
        self.adj[b].append(a)
        return edge_id

    def remove_edge(self, edge_id: int) -> bool:
        edge = self.edges.pop(edge_id, None)
        if edge is None:
            return False
        # one entry per direction; parallel edges keep their own entries
        self.adj[edge.a].remove(edge.b)
        self.adj[edge.b].remove(edge.a)
        return True

    def find_edge(self, a: int, b: int) -> Optional[int]:
        for edge in self.edges.values():
            if (edge.a, edge.b) in ((a, b), (b, a)):
                return edge.id
        return None

    # ---- queries ---- #
    @property
    def n_nodes(self) -> int:
        return len(self.nodes)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def node(self, node_id: int) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def node_ids(self) -> List[int]:
        return list(self.nodes)

    def edge_list(self) -> List[Edge]:
        return list(self.edges.values())

    def neighbors(self, node_id: int) -> List[int]:
        try:
            return list(self.adj[node_id])
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def degree(self, node_id: int) -> int:
        return len(self.adj.get(node_id, ()))

    def degrees(self) -> Dict[int, int]:
        return {n: len(nbrs) for n, nbrs in self.adj.items()}

    def node_by_label(self, label: int) -> Optional[int]:
        for node in self.nodes.values():
            if node.label == label:
                return node.id
        return None

    def consistency_errors(self) -> List[str]:
        errors = []
        expected: Dict[int, List[int]] = {n: [] for n in self.nodes}
        for edge in self.edges.values():
            for end in (edge.a, edge.b):
                if end not in self.nodes:
                    errors.append(f"edge {edge.id} references missing node {end}")
            if edge.a in expected and edge.b in expected:
                expected[edge.a].append(edge.b)
                expected[edge.b].append(edge.a)
        if set(self.adj) != set(self.nodes):
            errors.append("adjacency keys differ from node set")
        for node_id, nbrs in expected.items():
            if sorted(self.adj.get(node_id, [])) != sorted(nbrs):
                errors.append(f"adjacency of node {node_id} does not match its edges")
        return errors

    # ---- geometry helpers ---- #
    def positions(self, ids: Optional[Sequence[int]] = None) -> np.ndarray:
        if ids is None:
            ids = self.node_ids()
        if not ids:
            return np.zeros((0, 2), dtype=float)
        return np.array([self.nodes[i].pos for i in ids], dtype=float)

    def set_positions(self, ids: Sequence[int], pos: np.ndarray) -> None:
        for i, node_id in enumerate(ids):
            self.nodes[node_id].pos = np.array(pos[i], dtype=float)

    def move_node(self, node_id: int, x: float, y: float) -> None:
        self.node(node_id).pos = np.array([x, y], dtype=float)

    def bounding_box(self) -> Tuple[float, float, float, float]:
        if self.n_nodes == 0:
            return -1.0, 1.0, -1.0, 1.0
        pos = self.positions()
        xs = pos[:, 0]
        ys = pos[:, 1]
        return float(xs.min()), float(xs.max()), float(ys.min()), float(ys.max())

    # ---- construction ---- #
    @staticmethod
    def from_edge_list(
        triples: Iterable[EdgeTriple], seed: Optional[int] = None, spread: float = 50.0
    ) -> "GraphModel":
        g = GraphModel()
        rng = np.random.default_rng(seed)
        by_label: Dict[int, int] = {}

        def node_for(label: int) -> int:
            if label not in by_label:
                x, y = rng.uniform(-spread, spread, size=2)
                by_label[label] = g.add_node(float(x), float(y), label=label)
            return by_label[label]

        for from_label, to_label, weight in triples:
            a = node_for(int(from_label))
            b = node_for(int(to_label))
            g.add_edge(a, b, weight)
        return g
