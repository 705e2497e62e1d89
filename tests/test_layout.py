"""Layout engine: warm-up, force signs, degenerate input and convergence."""

import numpy as np
import pytest

from grephite.graph_model import GraphModel
from grephite.layout import DAMPING, INITIAL_TIMESTEP, MAX_DISPLACEMENT, LayoutEngine, LayoutParams


def pair(distance: float, weight=None) -> tuple:
    g = GraphModel()
    a = g.add_node(-distance / 2.0, 0.0)
    b = g.add_node(distance / 2.0, 0.0)
    g.add_edge(a, b, weight)
    return g, a, b


def gap(g: GraphModel, a: int, b: int) -> float:
    return float(np.linalg.norm(g.nodes[a].pos - g.nodes[b].pos))


class TestWarmUp:

    def test_timestep_decays_to_steady_value(self):
        g, _, _ = pair(100.0)
        engine = LayoutEngine()
        engine.step(g)
        assert engine.timestep == pytest.approx(INITIAL_TIMESTEP * 0.8)
        for _ in range(40):
            engine.step(g)
        assert 0.8 <= engine.timestep <= 1.0
        steady = engine.timestep
        engine.step(g)
        assert engine.timestep == steady

    def test_disabled_engine_does_nothing(self):
        g, a, _ = pair(100.0)
        before = g.nodes[a].pos.copy()
        engine = LayoutEngine(LayoutParams(enabled=False))
        assert engine.step(g) is False
        assert engine.timestep is None
        assert (g.nodes[a].pos == before).all()


class TestForces:

    def test_close_nodes_are_pushed_apart(self):
        g, a, b = pair(10.0)
        LayoutEngine().step(g)
        assert gap(g, a, b) > 10.0

    def test_distant_connected_nodes_are_pulled_together(self):
        g, a, b = pair(2000.0)
        LayoutEngine(LayoutParams(k_g=0.0)).step(g)
        assert gap(g, a, b) < 2000.0

    def test_unconnected_nodes_only_repel(self):
        g = GraphModel()
        a = g.add_node(-500.0, 0.0)
        b = g.add_node(500.0, 0.0)
        LayoutEngine(LayoutParams(k_g=0.0)).step(g)
        assert gap(g, a, b) > 1000.0

    def test_gravity_pulls_towards_origin(self):
        g = GraphModel()
        a = g.add_node(3000.0, 0.0)
        g.add_node(3000.0, 3000.0)
        LayoutEngine(LayoutParams(k_r=0.0, k_g=1.0)).step(g)
        assert np.linalg.norm(g.nodes[a].pos) < 3000.0

    def test_weight_scales_attraction(self):
        light, a1, b1 = pair(2000.0)
        heavy, a2, b2 = pair(2000.0, weight=1000.0)
        params = LayoutParams(k_g=0.0, k_r=0.0, k_w=1.0)
        LayoutEngine(params).step(light)
        LayoutEngine(params).step(heavy)
        assert gap(heavy, a2, b2) <= gap(light, a1, b1)


class TestSpeedControl:

    def test_global_speed_formula_and_carry_over(self):
        engine = LayoutEngine()
        F = np.array([[3.0, 4.0]])
        P = np.zeros((1, 2))
        mass = np.array([1.0])
        # traction 2.5, swinging 5.0
        assert engine._global_speed(F, P, mass) == pytest.approx(0.025)
        assert engine.prev_global_speed == pytest.approx(0.025)
        assert engine._global_speed(F, P, mass) == pytest.approx(0.025 + 0.0125)

    def test_global_speed_without_swinging(self):
        engine = LayoutEngine()
        F = np.array([[1.0, 1.0]])
        assert engine._global_speed(F, F.copy(), np.array([2.0])) == pytest.approx(0.05)

    def test_global_speed_is_clamped(self):
        engine = LayoutEngine()
        F = np.array([[1.0, 0.0]])
        assert engine._global_speed(F, -F, np.array([1.0])) == pytest.approx(0.01)
        engine.prev_global_speed = 100.0
        assert engine._global_speed(F, F.copy(), np.array([1.0])) == pytest.approx(10.0)

    def test_local_speed(self):
        engine = LayoutEngine()
        F = np.array([[3.0, 4.0], [3.0, 4.0]])
        P = np.array([[3.0, 4.0], [3.0, 0.0]])
        disp = engine._displacement(F, P, 1.0)
        # k_s * g / (1 + g * sqrt(|P - F|))
        assert disp[0] == pytest.approx(np.array([0.3, 0.4]))
        assert disp[1] == pytest.approx(F[1] * 0.1 / 3.0)

    def test_displacement_is_capped(self):
        engine = LayoutEngine()
        F = np.array([[3000.0, 4000.0], [0.0, 0.0], [0.5, 0.0]])
        disp = engine._displacement(F, F.copy(), 10.0)
        norms = np.linalg.norm(disp, axis=1)
        assert norms[0] == pytest.approx(MAX_DISPLACEMENT)
        assert (norms <= MAX_DISPLACEMENT + 1e-9).all()
        assert norms[1] == 0.0
        assert disp[2] == pytest.approx(np.array([0.5, 0.0]))

    def test_velocity_is_damped(self):
        g, a, b = pair(100.0)
        engine = LayoutEngine()
        before = g.nodes[a].pos.copy()
        engine.step(g)
        v = engine.velocities[a]
        assert v == pytest.approx(engine.prev_forces[a] * DAMPING)
        assert g.nodes[a].pos - before == pytest.approx(v * engine.timestep)

    def test_gravity_scales_with_mass_and_distance(self):
        engine = LayoutEngine(LayoutParams(k_g=0.2))
        X = np.array([[3.0, 4.0], [0.0, -2.0], [0.0, 0.0]])
        mass = np.array([1.0, 3.0, 2.0])
        G = engine._gravity(X, mass)
        assert G[0] == pytest.approx(np.array([-0.6, -0.8]))
        assert G[1] == pytest.approx(np.array([0.0, 1.2]))
        assert G[2] == pytest.approx(np.array([0.0, 0.0]))

class TestDegenerateInput:

    def test_single_node_does_not_move(self):
        g = GraphModel()
        a = g.add_node(5.0, 5.0)
        engine = LayoutEngine()
        assert engine.step(g) is False
        assert (g.nodes[a].pos == [5.0, 5.0]).all()

    def test_coincident_nodes_stay_finite(self):
        g = GraphModel()
        a = g.add_node(0.0, 0.0)
        b = g.add_node(0.0, 0.0)
        g.add_edge(a, b)
        engine = LayoutEngine()
        for _ in range(20):
            engine.step(g)
        assert np.isfinite(g.positions()).all()

    def test_stale_state_is_ignored(self):
        g, a, b = pair(50.0)
        c = g.add_node(10.0, 10.0)
        engine = LayoutEngine()
        engine.step(g)
        g.remove_node(c)
        engine.step(g)
        assert c not in engine.velocities
        assert c not in engine.prev_forces
        assert np.isfinite(g.positions()).all()

    def test_approximate_repulsion_ignores_far_pairs(self):
        g = GraphModel()
        a = g.add_node(-5000.0, 0.0)
        b = g.add_node(5000.0, 0.0)
        engine = LayoutEngine(LayoutParams(k_g=0.0, approximate=True))
        engine.step(g)
        assert g.nodes[a].pos[0] == pytest.approx(-5000.0)
        assert g.nodes[b].pos[0] == pytest.approx(5000.0)

    def test_approximate_repulsion_pushes_near_pairs(self):
        g = GraphModel()
        a = g.add_node(-10.0, 0.0)
        b = g.add_node(10.0, 0.0)
        LayoutEngine(LayoutParams(k_g=0.0, approximate=True)).step(g)
        assert gap(g, a, b) > 20.0


class TestConvergence:

    def test_two_connected_nodes_settle(self):
        g, a, b = pair(10.0)
        engine = LayoutEngine()
        for _ in range(4000):
            engine.step(g)
        last = gap(g, a, b)
        engine.step(g)
        assert np.isfinite(g.positions()).all()
        assert last > 1.0
        assert abs(gap(g, a, b) - last) < 1e-2

    def test_small_graph_stays_bounded(self):
        g = GraphModel.from_edge_list([(1, 2, None), (2, 3, 2.0), (3, 1, None), (3, 4, None)], seed=0)
        engine = LayoutEngine()
        for _ in range(500):
            engine.step(g)
        pos = g.positions()
        assert np.isfinite(pos).all()
        assert np.abs(pos).max() < 1e5
