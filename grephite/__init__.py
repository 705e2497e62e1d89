"""Grephite: force-directed graph viewer with shortest paths and scriptable node colouring."""

from .colors import BASE_COLOR, ColorMap, parse_color
from .commands import CommandBuffer, CommandChannel, ResetColor, SetColor
from .core import GrephiteCore
from .graph_model import Edge, GraphModel, Node, UnknownNodeError
from .layout import LayoutEngine, LayoutParams
from .pathfinding import dijkstra
from .scripting import ScriptHost, ScriptState

__version__ = "0.1.0"

__all__ = [
    "BASE_COLOR",
    "ColorMap",
    "CommandBuffer",
    "CommandChannel",
    "Edge",
    "GraphModel",
    "GrephiteCore",
    "LayoutEngine",
    "LayoutParams",
    "Node",
    "ResetColor",
    "ScriptHost",
    "ScriptState",
    "SetColor",
    "UnknownNodeError",
    "dijkstra",
    "parse_color",
]
