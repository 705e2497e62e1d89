from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import List, Optional, Union

from .graph_model import EdgeTriple, GraphModel

logger = logging.getLogger(__name__)


class EdgeListError(ValueError):
    pass


def parse_edge_list(text: str) -> List[EdgeTriple]:
    """Parse ``from to [weight]`` lines; blank, ``#`` and short lines are skipped."""
    triples: List[EdgeTriple] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.split("#", 1)[0]
        parts = line.split()
        if len(parts) < 2:
            continue
        try:
            a = int(parts[0])
            b = int(parts[1])
            w = float(parts[2]) if len(parts) > 2 else None
        except ValueError as exc:
            raise EdgeListError(f"line {lineno}: {exc}") from exc
        if w is not None and not (math.isfinite(w) and w > 0.0):
            raise EdgeListError(f"line {lineno}: edge weight must be positive and finite, got {parts[2]}")
        if a == b:
            logger.warning("line %d: skipping self loop on %d", lineno, a)
            continue
        triples.append((a, b, w))
    return triples


def read_edge_list(path: Union[str, Path]) -> List[EdgeTriple]:
    return parse_edge_list(Path(path).read_text(encoding="utf-8"))


def load_graph(path: Union[str, Path], seed: Optional[int] = None) -> GraphModel:
    triples = read_edge_list(path)
    graph = GraphModel.from_edge_list(triples, seed=seed)
    logger.info("loaded %d nodes and %d edges from %s", graph.n_nodes, graph.n_edges, path)
    return graph
