from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from .config import AppConfig
from .core import GrephiteCore
from .graph_model import GraphModel
from .layout import LayoutParams
from .loader import EdgeListError, load_graph

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    defaults = AppConfig()
    layout = LayoutParams()
    p = argparse.ArgumentParser(prog="grephite", description="Interactive force-directed graph viewer.")
    p.add_argument("edges", nargs="?", default=defaults.edges_path,
                   help="edge list file, one 'from to [weight]' per line (default: %(default)s)")
    p.add_argument("--scripts-dir", default=defaults.scripts_dir, help="directory with *.py scripts")
    p.add_argument("--k-r", type=float, default=layout.k_r, help="repulsion coefficient")
    p.add_argument("--k-g", type=float, default=layout.k_g, help="gravity coefficient")
    p.add_argument("--k-w", type=float, default=layout.k_w, help="edge weight exponent")
    p.add_argument("--approximate", action="store_true", help="only repel nearby node pairs")
    p.add_argument("--no-physics", action="store_true", help="start with the layout disabled")
    p.add_argument("--seed", type=int, default=None, help="seed for initial node positions")
    p.add_argument("--speed", type=float, default=defaults.script_speed, help="script steps per second")
    p.add_argument("--ticks", type=int, default=None,
                   help="run this many layout ticks without a window and exit")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p


def config_from_args(args: argparse.Namespace) -> AppConfig:
    return AppConfig(
        edges_path=args.edges,
        scripts_dir=args.scripts_dir,
        seed=args.seed,
        script_speed=args.speed,
        layout=LayoutParams(
            enabled=not args.no_physics,
            k_r=args.k_r,
            k_g=args.k_g,
            k_w=args.k_w,
            approximate=args.approximate,
        ),
    )


def build_core(config: AppConfig) -> GrephiteCore:
    graph = GraphModel()
    if config.edges_path and os.path.exists(config.edges_path):
        graph = load_graph(config.edges_path, seed=config.seed)
    elif config.edges_path:
        logger.warning("edge list %s not found; starting with an empty graph", config.edges_path)
    return GrephiteCore(graph, params=config.layout, script_speed=config.script_speed)


def run_headless(core: GrephiteCore, ticks: int, dt: float = 1.0 / 60.0) -> None:
    for _ in range(ticks):
        core.tick(dt)
    xmin, xmax, ymin, ymax = core.graph.bounding_box()
    logger.info("after %d ticks: %d nodes, %d edges, bbox x=[%.1f, %.1f] y=[%.1f, %.1f]",
                ticks, core.graph.n_nodes, core.graph.n_edges, xmin, xmax, ymin, ymax)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = config_from_args(args)
    try:
        core = build_core(config)
    except EdgeListError as exc:
        logger.error("could not load %s: %s", config.edges_path, exc)
        return 2
    if args.ticks is not None:
        run_headless(core, args.ticks)
        return 0
    from .app import GrephiteApp

    GrephiteApp(core, config).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
