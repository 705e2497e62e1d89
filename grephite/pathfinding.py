from __future__ import annotations

import heapq
import math
from typing import Dict, List, Mapping, Tuple

from .graph_model import GraphModel, UnknownNodeError


def _weighted_adjacency(graph: GraphModel) -> Dict[int, List[Tuple[int, float]]]:
    nbrs: Dict[int, List[Tuple[int, float]]] = {n: [] for n in graph.nodes}
    for edge in graph.edges.values():
        w = 1.0 if edge.weight is None else edge.weight
        nbrs[edge.a].append((edge.b, w))
        nbrs[edge.b].append((edge.a, w))
    return nbrs


def dijkstra(graph: GraphModel, source: int) -> Dict[int, float]:
    """Shortest distance from ``source`` to every live node (``math.inf`` if unreachable).

    Edges are traversed in both directions; an unweighted edge costs 1.0.
    """
    if source not in graph:
        raise UnknownNodeError(source)
    nbrs = _weighted_adjacency(graph)
    dist = {n: math.inf for n in graph.nodes}
    dist[source] = 0.0
    heap = [(0.0, source)]
    while heap:
        d, u = heapq.heappop(heap)
        if d > dist[u]:
            continue  # stale entry
        for v, w in nbrs[u]:
            nd = d + w
            if nd < dist[v]:
                dist[v] = nd
                heapq.heappush(heap, (nd, v))
    return dist


def reachable(distances: Mapping[int, float]) -> Dict[int, float]:
    return {n: d for n, d in distances.items() if math.isfinite(d)}


def max_finite_distance(distances: Mapping[int, float]) -> float:
    finite = [d for d in distances.values() if math.isfinite(d)]
    return max(finite) if finite else 0.0
