from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .layout import LayoutParams


@dataclass
class AppConfig:
    edges_path: Optional[str] = "graph.edges"
    scripts_dir: str = "scripts"
    seed: Optional[int] = None
    script_speed: float = 1.0
    timer_interval_ms: int = 20
    node_size: float = 260.0
    pick_radius_px: float = 12.0
    layout: LayoutParams = field(default_factory=LayoutParams)
