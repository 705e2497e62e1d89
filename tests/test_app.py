"""Smoke tests for the viewer on the non-interactive Agg backend."""

from types import SimpleNamespace

import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from grephite.app import GrephiteApp  # noqa: E402
from grephite.config import AppConfig  # noqa: E402
from grephite.core import GrephiteCore  # noqa: E402
from grephite.graph_model import GraphModel  # noqa: E402


@pytest.fixture
def app(tmp_path):
    (tmp_path / "paint.py").write_text("for n in graph.get_nodes():\n    set_color(n, '#ff0000')\n    yield\n")
    g = GraphModel.from_edge_list([(1, 2, None), (2, 3, None)], seed=0)
    viewer = GrephiteApp(GrephiteCore(g), AppConfig(edges_path=None, scripts_dir=str(tmp_path)))
    yield viewer
    viewer.timer.stop()
    plt.close(viewer.fig)


def mouse(app, xdata, ydata, button=1):
    x, y = app.ax.transData.transform((xdata, ydata))
    return SimpleNamespace(inaxes=app.ax, x=x, y=y, xdata=xdata, ydata=ydata, button=button, key=None)


class TestViewer:

    def test_timer_tick_redraws(self, app):
        before = app.core.graph.positions().copy()
        app._on_timer()
        assert app.node_scatter.get_offsets().shape == (3, 2)
        assert not (before == app.core.graph.positions()).all()

    def test_load_and_step_script(self, app):
        assert app.tb_script.text == "paint"
        app.on_load_script(None)
        assert app.core.scripts.active
        app.on_step(None)
        app._on_timer()
        first = app.core.graph.node_ids()[0]
        assert app.core.colors.get(first) == pytest.approx((1.0, 0.0, 0.0, 1.0))

    def test_physics_toggle_and_params(self, app):
        app.on_toggle_physics(None)
        assert not app.core.params.enabled
        assert app.btn_physics.label.get_text() == "Physics: OFF"
        app.on_kr_changed("123")
        assert app.core.params.k_r == 123.0
        app.on_kg_changed("oops")
        assert app.core.params.k_g == 0.2

    def test_distance_coloring(self, app):
        source = app.core.graph.node_ids()[0]
        app.core.select(source)
        app.on_path_clicked(None)
        app._on_timer()
        assert app.core.distances is not None
        colors = app._face_colors(app.core.graph.node_ids())
        assert colors.shape == (3, 4)

    def test_drag_moves_and_pins_node(self, app):
        node = app.core.graph.node_ids()[0]
        x, y = app.core.graph.nodes[node].pos
        app.on_click(mouse(app, x, y))
        assert app.core.dragging == node
        assert app.core.selected == node
        app.on_motion(mouse(app, x + 30.0, y - 10.0))
        app._on_timer()
        app._on_timer()
        assert app.core.graph.nodes[node].pos == pytest.approx(np.array([x + 30.0, y - 10.0]))
        app.on_release(mouse(app, x + 30.0, y - 10.0))
        assert app.core.dragging is None

    def test_motion_without_drag_is_ignored(self, app):
        before = app.core.graph.positions().copy()
        app.on_motion(mouse(app, 0.0, 0.0))
        assert (app.core.graph.positions() == before).all()

    def test_scroll_zooms_about_pointer(self, app):
        app.ax.set_aspect("auto")
        app.ax.set_xlim(-100.0, 100.0)
        app.ax.set_ylim(-100.0, 100.0)
        app.on_scroll(SimpleNamespace(inaxes=app.ax, xdata=50.0, ydata=0.0, button="up"))
        x0, x1 = app.ax.get_xlim()
        assert x1 - x0 == pytest.approx(200.0 / 1.2)
        assert (50.0 - x0) / (x1 - x0) == pytest.approx(0.75)
        app.on_scroll(SimpleNamespace(inaxes=app.ax, xdata=50.0, ydata=0.0, button="down"))
        assert app.ax.get_xlim() == pytest.approx((-100.0, 100.0))
