from __future__ import annotations

import logging
import re
from typing import Container, Dict, Iterable, Optional, Sequence, Tuple

import numpy as np
from matplotlib.colors import to_rgba

from .commands import ResetColor, ScriptCommand, SetColor

logger = logging.getLogger(__name__)

RGBA = Tuple[float, float, float, float]

BASE_COLOR: RGBA = (0.0, 0.0, 0.0, 1.0)
SELECTED_COLOR: RGBA = (1.0, 0.0, 0.0, 1.0)
UNREACHABLE_COLOR: RGBA = (0.6, 0.6, 0.6, 1.0)

_HEX = re.compile(r"#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})")


def parse_color(spec: str) -> Optional[RGBA]:
    """Parse ``#RGB``, ``#RRGGBB`` or ``#RRGGBBAA`` (leading ``#`` optional)."""
    if not isinstance(spec, str):
        return None
    m = _HEX.fullmatch(spec)
    if m is None:
        return None
    return tuple(float(c) for c in to_rgba("#" + m.group(1)))


class ColorMap:
    def __init__(self, default: RGBA = BASE_COLOR) -> None:
        self.default = default
        self.colors: Dict[int, RGBA] = {}

    def get(self, node_id: int) -> RGBA:
        return self.colors.get(node_id, self.default)

    def ensure(self, node_id: int) -> None:
        self.colors.setdefault(node_id, self.default)

    def forget(self, node_id: int) -> None:
        self.colors.pop(node_id, None)

    def reset_all(self) -> None:
        for node_id in self.colors:
            self.colors[node_id] = self.default

    def apply(self, command: ScriptCommand, live_nodes: Container[int]) -> bool:
        if command.node not in live_nodes:
            logger.debug("ignoring %r for missing node", command)
            return False
        if isinstance(command, SetColor):
            rgba = parse_color(command.color)
            if rgba is None:
                logger.warning("unparsable color %r for node %d", command.color, command.node)
                return False
            self.colors[command.node] = rgba
            return True
        if isinstance(command, ResetColor):
            self.colors[command.node] = self.default
            return True
        raise TypeError(f"unknown command {command!r}")

    def apply_all(self, commands: Iterable[ScriptCommand], live_nodes: Container[int]) -> int:
        return sum(1 for c in commands if self.apply(c, live_nodes))

    def as_array(self, ids: Sequence[int]) -> np.ndarray:
        if not ids:
            return np.zeros((0, 4), dtype=float)
        return np.array([self.get(n) for n in ids], dtype=float)
