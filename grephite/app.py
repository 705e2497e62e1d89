"""
Grephite interactive viewer

- View mode: click a node to select it (click again to clear the selection);
  hold the button to drag it, the layout leaves it where the pointer is.
- Edit mode: click empty space to add a node, click two nodes to add an edge
  (clicking an existing edge's endpoints removes it), right click deletes a node.
- Physics: toggle the force layout and edit k_r / k_g / k_w live.
- Dijkstra: colour nodes by shortest distance from the selected node
  (grey = unreachable).
- Scripts: load a script from the scripts directory, step it by hand or let it
  run at the chosen steps per second.
- Scroll or +/- zooms about the pointer.

The window is a thin shell around GrephiteCore; all simulation happens in
``core.tick`` driven by a canvas timer.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

import numpy as np
import matplotlib.pyplot as plt
from matplotlib import colormaps
from matplotlib.collections import LineCollection
from matplotlib.widgets import Button, Slider, TextBox

from .colors import SELECTED_COLOR, UNREACHABLE_COLOR
from .config import AppConfig
from .core import GrephiteCore
from .pathfinding import max_finite_distance, reachable
from .scripting import MAX_SPEED, MIN_SPEED, ScriptState, available_scripts, read_script

logger = logging.getLogger(__name__)

ZOOM_STEP = 1.2


class GrephiteApp:
    def __init__(self, core: GrephiteCore, config: Optional[AppConfig] = None) -> None:
        self.core = core
        self.config = config if config is not None else AppConfig()
        self.fig, self.ax = plt.subplots(figsize=(11, 6.5))
        self.fig.canvas.manager.set_window_title("Grephite")
        self.ax.set_aspect("equal", adjustable="datalim")
        self.ax.set_title("Grephite: click a node to select it; Edit mode adds nodes and edges")
        self.ax.grid(True, alpha=0.2)
        self.ax.set_position([0.04, 0.05, 0.66, 0.9])

        self.edit_mode: bool = False
        self.edge_from: Optional[int] = None
        self._drag_offset = (0.0, 0.0)
        self._ids: List[int] = []

        # artists
        self.node_scatter = self.ax.scatter([], [], s=self.config.node_size, edgecolors="k", zorder=3)
        self.edge_collection = LineCollection([], colors="#cc3333", linewidths=1.2, zorder=2)
        self.ax.add_collection(self.edge_collection)
        self.sel_scatter = self.ax.scatter([], [], s=self.config.node_size * 1.8, facecolors="none",
                                           edgecolors="orange", linewidths=2.0, zorder=4)
        self.node_labels: List[plt.Text] = []
        self.status_text = self.ax.text(0.02, 0.98, "", transform=self.ax.transAxes, va="top", ha="left",
                                        fontsize=9, color="black",
                                        bbox=dict(boxstyle="round,pad=0.3", fc="#f0f0f0", ec="#999999", alpha=0.8))

        self._build_widgets()

        self.cid_click = self.fig.canvas.mpl_connect("button_press_event", self.on_click)
        self.cid_motion = self.fig.canvas.mpl_connect("motion_notify_event", self.on_motion)
        self.cid_release = self.fig.canvas.mpl_connect("button_release_event", self.on_release)
        self.cid_scroll = self.fig.canvas.mpl_connect("scroll_event", self.on_scroll)
        self.cid_key = self.fig.canvas.mpl_connect("key_press_event", self.on_key_press)

        self._last_tick = time.perf_counter()
        self._tick_count = 0
        self.timer = self.fig.canvas.new_timer(interval=self.config.timer_interval_ms)
        self.timer.add_callback(self._on_timer)
        self.timer.start()

        self._auto_zoom()
        self._redraw()

    # ---------------- UI ---------------- #
    def _build_widgets(self) -> None:
        right1 = 0.74
        right2 = 0.87
        pad = 0.006
        bw = 0.12
        bh = 0.04
        params = self.core.params

        y1 = 0.9
        self.ax_physics = self.fig.add_axes([right1, y1, bw, bh]); y1 -= (bh + pad)
        self.ax_kr = self.fig.add_axes([right1, y1, bw, bh]); y1 -= (bh + pad)
        self.ax_kg = self.fig.add_axes([right1, y1, bw, bh]); y1 -= (bh + pad)
        self.ax_kw = self.fig.add_axes([right1, y1, bw, bh]); y1 -= (bh + pad)
        self.ax_approx = self.fig.add_axes([right1, y1, bw, bh]); y1 -= (bh + pad)
        self.ax_path = self.fig.add_axes([right1, y1, bw, bh]); y1 -= (bh + pad)
        self.ax_clear_dist = self.fig.add_axes([right1, y1, bw, bh]); y1 -= (bh + pad)
        self.ax_mode = self.fig.add_axes([right1, y1, bw, bh]); y1 -= (bh + pad)

        y2 = 0.9
        self.ax_script_tb = self.fig.add_axes([right2, y2, bw, bh]); y2 -= (bh + pad)
        self.ax_load = self.fig.add_axes([right2, y2, bw, bh]); y2 -= (bh + pad)
        self.ax_list = self.fig.add_axes([right2, y2, bw, bh]); y2 -= (bh + pad)
        self.ax_step = self.fig.add_axes([right2, y2, bw, bh]); y2 -= (bh + pad)
        self.ax_run = self.fig.add_axes([right2, y2, bw, bh]); y2 -= (bh + pad)
        self.ax_speed = self.fig.add_axes([right2, y2, bw, bh]); y2 -= (bh + pad)
        self.ax_stop = self.fig.add_axes([right2, y2, bw, bh]); y2 -= (bh + pad)
        self.ax_reset_colors = self.fig.add_axes([right2, y2, bw, bh]); y2 -= (bh + pad)

        self._add_column_header(right1 + bw * 0.5, 0.955, "Layout / Paths")
        self._add_column_header(right2 + bw * 0.5, 0.955, "Scripts")

        self.btn_physics = Button(self.ax_physics, "", color="#e8ffe8", hovercolor="#d7ffd7")
        self.btn_physics.on_clicked(self.on_toggle_physics)
        self.tb_kr = TextBox(self.ax_kr, "k_r", initial=f"{params.k_r}")
        self.tb_kr.on_submit(self.on_kr_changed)
        self.tb_kg = TextBox(self.ax_kg, "k_g", initial=f"{params.k_g}")
        self.tb_kg.on_submit(self.on_kg_changed)
        self.tb_kw = TextBox(self.ax_kw, "k_w", initial=f"{params.k_w}")
        self.tb_kw.on_submit(self.on_kw_changed)
        self.btn_approx = Button(self.ax_approx, "", color="#f3f3f3", hovercolor="#e7e7e7")
        self.btn_approx.on_clicked(self.on_toggle_approx)
        self.btn_path = Button(self.ax_path, "Dijkstra", color="#e1efff", hovercolor="#cfe4ff")
        self.btn_path.on_clicked(self.on_path_clicked)
        self.btn_clear_dist = Button(self.ax_clear_dist, "Clear Distances", color="#f3f3f3", hovercolor="#e7e7e7")
        self.btn_clear_dist.on_clicked(self.on_clear_distances)
        self.btn_mode = Button(self.ax_mode, "", color="#fff2e6", hovercolor="#ffe4cc")
        self.btn_mode.on_clicked(self.on_toggle_mode)

        scripts = available_scripts(self.config.scripts_dir)
        self.tb_script = TextBox(self.ax_script_tb, "script", initial=scripts[0].stem if scripts else "")
        self.btn_load = Button(self.ax_load, "Load Script", color="#f0f0ff", hovercolor="#e5e5ff")
        self.btn_load.on_clicked(self.on_load_script)
        self.btn_list = Button(self.ax_list, "List Scripts", color="#f9f9f9", hovercolor="#ececec")
        self.btn_list.on_clicked(self.on_list_scripts)
        self.btn_step = Button(self.ax_step, "Step", color="#e6fff7", hovercolor="#d6ffef")
        self.btn_step.on_clicked(self.on_step)
        self.btn_run = Button(self.ax_run, "Start", color="#e8f7ff", hovercolor="#d9f1ff")
        self.btn_run.on_clicked(self.on_toggle_run)
        self.sl_speed = Slider(self.ax_speed, "steps/s", MIN_SPEED, MAX_SPEED, valinit=self.core.scripts.speed)
        self.sl_speed.on_changed(self.on_speed_changed)
        self.btn_stop = Button(self.ax_stop, "Stop Script", color="#ffecec", hovercolor="#ffdcdc")
        self.btn_stop.on_clicked(self.on_stop_script)
        self.btn_reset_colors = Button(self.ax_reset_colors, "Reset Colors", color="#f3f3f3", hovercolor="#e7e7e7")
        self.btn_reset_colors.on_clicked(self.on_reset_colors)

        self._sync_labels()
        self._shrink_widget_fonts()

    def _sync_labels(self) -> None:
        params = self.core.params
        self.btn_physics.label.set_text(f"Physics: {'ON' if params.enabled else 'OFF'}")
        self.btn_approx.label.set_text(f"Approx: {'ON' if params.approximate else 'OFF'}")
        self.btn_mode.label.set_text(f"Mode: {'Edit' if self.edit_mode else 'View'}")
        self.btn_run.label.set_text("Pause" if self.core.scripts.running else "Start")

    # ---------------- Events ---------------- #
    def on_click(self, event):
        if event.inaxes != self.ax:
            return
        if event.xdata is None or event.ydata is None:
            return
        node = self._node_at_display(event.x, event.y)
        if event.button == 3:
            if self.edit_mode and node is not None:
                self._delete_node(node)
            return
        if event.button != 1:
            return
        if not self.edit_mode:
            # first click selects, any further click clears the selection
            self.core.select(node if self.core.selected is None else None)
            if self.core.selected is not None:
                self._set_status(f"Selected node {self.core.graph.nodes[node].label}.")
            if node is not None and self.core.start_drag(node):
                x, y = self.core.graph.nodes[node].pos
                self._drag_offset = (x - event.xdata, y - event.ydata)
            self._redraw()
            return
        if node is None:
            self.edge_from = None
            new_id = self.core.add_node(float(event.xdata), float(event.ydata))
            self._set_status(f"Added node {self.core.graph.nodes[new_id].label}.")
            self._redraw()
            return
        if self.edge_from is None or self.edge_from not in self.core.graph:
            self.edge_from = node
            self.core.select(node)
            self._set_status("Click another node to add an edge.")
        elif self.edge_from == node:
            self.edge_from = None
            self.core.select(None)
            self._set_status("Edge cancelled.")
        else:
            a, b = self.edge_from, node
            self.edge_from = None
            self.core.select(None)
            existing = self.core.graph.find_edge(a, b)
            if existing is not None:
                self.core.delete_edge(existing)
                self._set_status("Removed edge.")
            else:
                self.core.add_edge(a, b)
                self._set_status("Added edge.")
        self._redraw()

    def on_motion(self, event):
        if self.core.dragging is None or event.inaxes != self.ax:
            return
        if event.xdata is None or event.ydata is None:
            return
        dx, dy = self._drag_offset
        self.core.drag_to(event.xdata + dx, event.ydata + dy)
        self._redraw()

    def on_release(self, event):
        if event.button == 1 and self.core.dragging is not None:
            self.core.end_drag()

    def on_scroll(self, event):
        if event.inaxes != self.ax or event.xdata is None or event.ydata is None:
            return
        if event.button == "up":
            self._zoom_about(event.xdata, event.ydata, 1 / ZOOM_STEP)
        elif event.button == "down":
            self._zoom_about(event.xdata, event.ydata, ZOOM_STEP)

    def on_key_press(self, event):
        if event.key in ("delete", "backspace"):
            if self.edit_mode and self.core.selected is not None:
                self._delete_node(self.core.selected)
        elif event.key == "n":
            self.on_step(None)
        elif event.key == " ":
            self.on_toggle_run(None)
        elif event.key in ("+", "=", "-"):
            factor = ZOOM_STEP if event.key == "-" else 1 / ZOOM_STEP
            if event.inaxes == self.ax and event.xdata is not None:
                self._zoom_about(event.xdata, event.ydata, factor)
            else:
                (x0, x1), (y0, y1) = self.ax.get_xlim(), self.ax.get_ylim()
                self._zoom_about((x0 + x1) / 2.0, (y0 + y1) / 2.0, factor)

    # ---------------- Buttons ---------------- #
    def on_toggle_physics(self, _):
        params = self.core.params
        params.enabled = not params.enabled
        self._sync_labels()
        self._set_status(f"Physics {'enabled' if params.enabled else 'disabled'}.")

    def on_toggle_approx(self, _):
        params = self.core.params
        params.approximate = not params.approximate
        self._sync_labels()
        self._set_status(f"Approximate repulsion {'on' if params.approximate else 'off'}.")

    def _set_param(self, name: str, text: str, lo: float, hi: float) -> None:
        try:
            val = float(text.strip())
        except ValueError:
            self._set_status(f"Invalid {name} value.")
            return
        val = max(lo, min(hi, val))
        setattr(self.core.params, name, val)
        self._set_status(f"{name} set to {val}")

    def on_kr_changed(self, text: str) -> None:
        self._set_param("k_r", text, 0.0, 10000.0)

    def on_kg_changed(self, text: str) -> None:
        self._set_param("k_g", text, 0.0, 4.0)

    def on_kw_changed(self, text: str) -> None:
        self._set_param("k_w", text, 0.0, 2.0)

    def on_path_clicked(self, _):
        if self.core.selected is None:
            self._set_status("Select a node first.")
            return
        self.core.request_pathfinding(self.core.selected)
        self._set_status("Computing shortest distances...")

    def on_clear_distances(self, _):
        self.core.clear_distances()
        self._set_status("Cleared distances.")
        self._redraw()

    def on_toggle_mode(self, _):
        self.edit_mode = not self.edit_mode
        self.edge_from = None
        self._sync_labels()
        self._set_status(f"{'Edit' if self.edit_mode else 'View'} mode.")

    def on_load_script(self, _):
        name = self.tb_script.text.strip()
        if not name:
            self._set_status("Enter a script name.")
            return
        path = Path(self.config.scripts_dir) / (name if name.endswith(".py") else f"{name}.py")
        if not path.is_file():
            self._set_status(f"Script '{name}' not found.")
            return
        if self.core.load_script(read_script(path), name=path.name):
            self._set_status(f"Loaded {path.name}. Step or Start to run it.")
        else:
            self._set_status(f"{path.name} failed to compile; see log.")
        self._sync_labels()

    def on_list_scripts(self, _):
        scripts = available_scripts(self.config.scripts_dir)
        if not scripts:
            self._set_status(f"No scripts in {self.config.scripts_dir}.")
        else:
            self._set_status("Scripts: " + ", ".join(p.stem for p in scripts))

    def on_step(self, _):
        if not self.core.scripts.active:
            self._set_status("No script loaded.")
            return
        self.core.request_step()

    def on_toggle_run(self, _):
        if not self.core.scripts.active:
            self._set_status("No script loaded.")
            return
        running = self.core.scripts.toggle_running()
        self._sync_labels()
        self._set_status("Script running." if running else "Script paused.")

    def on_speed_changed(self, val: float) -> None:
        self.core.scripts.speed = val

    def on_stop_script(self, _):
        self.core.scripts.stop()
        self._sync_labels()
        self._set_status("Script stopped.")

    def on_reset_colors(self, _):
        self.core.colors.reset_all()
        self._redraw()

    # ---------------- Timer ---------------- #
    def _on_timer(self) -> None:
        now = time.perf_counter()
        dt, self._last_tick = now - self._last_tick, now
        was_active = self.core.scripts.active
        self.core.tick(dt)
        self._tick_count += 1
        if was_active and self.core.scripts.state is ScriptState.IDLE:
            self._sync_labels()
            self._set_status("Script finished.")
        self._redraw()
        if self._tick_count % 15 == 0 and self.core.dragging is None:
            self._auto_zoom()

    # ---------------- Edit ops ---------------- #
    def _delete_node(self, node_id: int) -> None:
        label = self.core.graph.nodes[node_id].label
        self.core.delete_node(node_id)
        self.edge_from = None
        self._set_status(f"Deleted node {label}.")
        self._redraw()

    # ---------------- Drawing helpers ---------------- #
    def _node_at_display(self, x_pix: float, y_pix: float) -> Optional[int]:
        ids, pos = self.core.positions()
        if not ids:
            return None
        xy_disp = self.ax.transData.transform(pos)
        d2 = (xy_disp[:, 0] - x_pix) ** 2 + (xy_disp[:, 1] - y_pix) ** 2
        idx = int(np.argmin(d2))
        if d2[idx] <= self.config.pick_radius_px ** 2:
            return ids[idx]
        return None

    def _face_colors(self, ids: List[int]) -> np.ndarray:
        distances = self.core.distances
        if distances is None:
            rgba = self.core.node_colors(ids)
        else:
            cmap = colormaps["viridis"]
            finite = reachable(distances)
            top = max_finite_distance(finite) or 1.0
            rgba = np.array([
                cmap(finite[n] / top) if n in finite else UNREACHABLE_COLOR
                for n in ids
            ], dtype=float).reshape(-1, 4)
        if self.core.selected in ids:
            rgba[ids.index(self.core.selected)] = SELECTED_COLOR
        return rgba

    def _update_labels(self, ids: List[int], pos: np.ndarray) -> None:
        if len(self.node_labels) != len(ids):
            for t in self.node_labels:
                t.remove()
            self.node_labels = [
                self.ax.text(0.0, 0.0, "", color="white", fontsize=8, ha="center", va="center", zorder=5)
                for _ in ids
            ]
        for t, node_id, p in zip(self.node_labels, ids, pos):
            t.set_text(str(self.core.graph.nodes[node_id].label))
            t.set_position((p[0], p[1]))

    def _redraw(self) -> None:
        ids, pos = self.core.positions()
        self._ids = ids
        if ids:
            self.node_scatter.set_offsets(pos)
            self.node_scatter.set_facecolors(self._face_colors(ids))
        else:
            self.node_scatter.set_offsets(np.empty((0, 2)))
        graph = self.core.graph
        self.edge_collection.set_segments([
            [graph.nodes[e.a].pos, graph.nodes[e.b].pos] for e in graph.edge_list()
        ])
        self._update_labels(ids, pos)
        if self.core.selected is not None and self.core.selected in graph:
            self.sel_scatter.set_offsets(graph.nodes[self.core.selected].pos.reshape(1, 2))
        else:
            self.sel_scatter.set_offsets(np.empty((0, 2)))
        self.fig.canvas.draw_idle()

    def _auto_zoom(self) -> None:
        if self.core.graph.n_nodes == 0:
            self._set_view(-300.0, 300.0, -300.0, 300.0)
            return
        xmin, xmax, ymin, ymax = self.core.graph.bounding_box()
        half = 0.7 * max(xmax - xmin, ymax - ymin, 100.0)
        cx = (xmin + xmax) / 2.0
        cy = (ymin + ymax) / 2.0
        self._set_view(cx - half, cx + half, cy - half, cy + half)

    def _zoom_about(self, x: float, y: float, factor: float) -> None:
        # (x, y) keeps its place on screen
        (x0, x1), (y0, y1) = self.ax.get_xlim(), self.ax.get_ylim()
        self._set_view(x - (x - x0) * factor, x + (x1 - x) * factor,
                       y - (y - y0) * factor, y + (y1 - y) * factor)

    def _set_view(self, x0: float, x1: float, y0: float, y1: float) -> None:
        self.ax.set_xlim(x0, x1)
        self.ax.set_ylim(y0, y1)
        self.fig.canvas.draw_idle()

    def _add_column_header(self, cx: float, y: float, label: str) -> None:
        self.fig.text(cx, y, label, fontsize=9, color="#333333", ha="center", va="center", zorder=-5.0)

    def _shrink_widget_fonts(self) -> None:
        for name in ("btn_physics", "btn_approx", "btn_path", "btn_clear_dist", "btn_mode", "btn_load",
                     "btn_list", "btn_step", "btn_run", "btn_stop", "btn_reset_colors"):
            getattr(self, name).label.set_fontsize(8)
        for name in ("tb_kr", "tb_kg", "tb_kw", "tb_script"):
            getattr(self, name).label.set_fontsize(8)
        self.sl_speed.label.set_fontsize(8)

    def _set_status(self, msg: str) -> None:
        logger.debug(msg)
        self.status_text.set_text(msg)
        self.fig.canvas.draw_idle()

    # ---------------- Run ---------------- #
    def run(self) -> None:
        plt.show()
