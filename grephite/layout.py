"""
ForceAtlas2-style layout engine.

Each tick accumulates degree-weighted repulsion, weighted spring attraction and
an optional gravity pull towards the origin, then moves nodes with an adaptive
global/local speed and a damped velocity. Forces are computed on dense numpy
arrays indexed by the order of ``GraphModel.node_ids()``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy.spatial import cKDTree

from .graph_model import GraphModel

logger = logging.getLogger(__name__)

INITIAL_TIMESTEP = 20.0
TIMESTEP_DECAY = 0.8
DAMPING = 0.95
MAX_DISPLACEMENT = 10.0
MIN_GLOBAL_SPEED, MAX_GLOBAL_SPEED = 0.01, 10.0
EPS = 1e-6


@dataclass
class LayoutParams:
    enabled: bool = True
    k_r: float = 5000.0
    k_w: float = 0.1
    k_g: float = 0.2
    k_s: float = 0.1
    approximate: bool = False
    ideal_edge_length: float = 100.0


def _unit(D: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # row-wise unit vectors; zero rows stay zero
    norm = np.linalg.norm(D, axis=-1)
    safe = np.where(norm > 0.0, norm, 1.0)
    return D / safe[..., None], norm


class LayoutEngine:
    def __init__(self, params: Optional[LayoutParams] = None) -> None:
        self.params = params if params is not None else LayoutParams()
        self.velocities: Dict[int, np.ndarray] = {}
        self.prev_forces: Dict[int, np.ndarray] = {}
        self.prev_global_speed: float = 0.0
        self.timestep: Optional[float] = None
        self.ticks: int = 0

    def forget(self, node_id: int) -> None:
        self.velocities.pop(node_id, None)
        self.prev_forces.pop(node_id, None)

    def _warm_up(self) -> float:
        if self.timestep is None:
            self.timestep = INITIAL_TIMESTEP
        if self.timestep > 1.0:
            self.timestep *= TIMESTEP_DECAY
        return self.timestep

    # ---------------- forces ---------------- #
    def _edge_arrays(self, graph: GraphModel, index: Dict[int, int]):
        ea: List[int] = []
        eb: List[int] = []
        w: List[float] = []
        for edge in graph.edges.values():
            if edge.a not in index or edge.b not in index:
                continue
            ea.append(index[edge.a])
            eb.append(index[edge.b])
            w.append(np.nan if edge.weight is None else edge.weight)
        return np.array(ea, dtype=int), np.array(eb, dtype=int), np.array(w, dtype=float)

    def _attraction(self, X: np.ndarray, ea: np.ndarray, eb: np.ndarray, w: np.ndarray) -> np.ndarray:
        A = np.zeros_like(X)
        if ea.size == 0:
            return A
        delta = X[eb] - X[ea]
        scale = np.ones_like(w)
        weighted = ~np.isnan(w)
        scale[weighted] = np.power(w[weighted], self.params.k_w)
        delta = delta * scale[:, None]
        np.add.at(A, ea, -delta)
        np.add.at(A, eb, delta)
        return A

    def _repulsion(self, X: np.ndarray, mass: np.ndarray) -> np.ndarray:
        if self.params.approximate:
            return self._repulsion_local(X, mass)
        D = X[:, None, :] - X[None, :, :]
        U, norm = _unit(D)
        dist = np.maximum(norm, EPS)
        mag = self.params.k_r * np.outer(mass, mass) / dist
        np.fill_diagonal(mag, 0.0)
        return np.sum(U * mag[..., None], axis=1)

    def _repulsion_local(self, X: np.ndarray, mass: np.ndarray) -> np.ndarray:
        # only pairs within one grid cell (2 x ideal edge length) of each other
        R = np.zeros_like(X)
        cell = 2.0 * self.params.ideal_edge_length
        pairs = cKDTree(X).query_pairs(r=cell, output_type="ndarray")
        if pairs.size == 0:
            return R
        i, j = pairs[:, 0], pairs[:, 1]
        U, norm = _unit(X[i] - X[j])
        dist = np.maximum(norm, EPS)
        f = U * (self.params.k_r * mass[i] * mass[j] / dist)[:, None]
        np.add.at(R, i, f)
        np.add.at(R, j, -f)
        return R

    def _gravity(self, X: np.ndarray, mass: np.ndarray) -> np.ndarray:
        if self.params.k_g == 0.0:
            return np.zeros_like(X)
        U, norm = _unit(X)
        return -U * (self.params.k_g * mass * norm)[:, None]

    # ---------------- speed control ---------------- #
    def _global_speed(self, F: np.ndarray, P: np.ndarray, mass: np.ndarray) -> float:
        swinging = float(np.sum(mass * np.linalg.norm(F - P, axis=1)))
        traction = float(np.sum(mass * np.linalg.norm((F + P) * 0.5, axis=1)))
        if swinging > EPS:
            speed = 0.1 * (traction / swinging) * 0.5 + self.prev_global_speed * 0.5
        else:
            speed = 0.05 + self.prev_global_speed * 0.5
        speed = float(np.clip(speed, MIN_GLOBAL_SPEED, MAX_GLOBAL_SPEED))
        self.prev_global_speed = speed
        return speed

    def _displacement(self, F: np.ndarray, P: np.ndarray, global_speed: float) -> np.ndarray:
        swinging = np.linalg.norm(P - F, axis=1)
        s = self.params.k_s * global_speed / (1.0 + global_speed * np.sqrt(swinging))
        fnorm = np.linalg.norm(F, axis=1)
        moving = fnorm > 0.0
        cap = np.full_like(fnorm, np.inf)
        cap[moving] = MAX_DISPLACEMENT / fnorm[moving]
        s = np.minimum(s, cap)
        return F * s[:, None]

    # ---------------- tick ---------------- #
    def step(self, graph: GraphModel) -> bool:
        if not self.params.enabled:
            return False
        timestep = self._warm_up()
        ids = graph.node_ids()
        self._prune(ids)
        if len(ids) < 2:
            return False
        self.ticks += 1

        index = {node_id: i for i, node_id in enumerate(ids)}
        X = graph.positions(ids)
        ea, eb, w = self._edge_arrays(graph, index)
        degrees = graph.degrees()
        mass = np.array([degrees[n] for n in ids], dtype=float) + 1.0

        A = self._attraction(X, ea, eb, w)
        F = self._repulsion(X, mass) + self._gravity(X, mass) - A

        zero = np.zeros(2, dtype=float)
        P = np.array([self.prev_forces.get(n, zero) for n in ids], dtype=float)
        global_speed = self._global_speed(F, P, mass)
        disp = self._displacement(F, P, global_speed)

        V = np.array([self.velocities.get(n, zero) for n in ids], dtype=float)
        V = (V + disp) * DAMPING
        X = X + V * timestep

        if not np.all(np.isfinite(X)):
            logger.warning("layout produced non-finite positions; tick discarded")
            return False
        for i, node_id in enumerate(ids):
            self.prev_forces[node_id] = disp[i]
            self.velocities[node_id] = V[i]
        graph.set_positions(ids, X)
        return True

    def _prune(self, live_ids: List[int]) -> None:
        live = set(live_ids)
        for node_id in [n for n in self.velocities if n not in live]:
            self.forget(node_id)
        for node_id in [n for n in self.prev_forces if n not in live]:
            self.forget(node_id)
