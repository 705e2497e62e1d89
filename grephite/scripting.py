"""
Script host: runs one user script at a time as a resumable generator.

A script is plain Python. Its top-level body becomes the body of a generator
function, so every ``yield`` in it is a point where execution suspends until
the host steps it again. Scripts see a small fixed API:

    set_color(node_id, "#rrggbb")   queue a recolour of a node
    reset_color(node_id)            queue a reset to the base colour
    graph                           read-only snapshot of the graph
                                    (len(), get_nodes(), get_neighbours(n), get_label(n))

Commands are buffered per session and only reach the colour map when the host
flushes them.
"""
from __future__ import annotations

import ast
import builtins
import enum
import inspect
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

from .commands import CommandBuffer, CommandChannel, ResetColor, SetColor
from .graph_model import GraphModel

logger = logging.getLogger(__name__)
script_logger = logging.getLogger("grephite.script")

MIN_SPEED, MAX_SPEED = 1.0, 100.0

_SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "dict", "divmod", "enumerate", "filter", "float",
    "format", "frozenset", "hex", "int", "isinstance", "iter", "len", "list", "map",
    "max", "min", "next", "range", "reversed", "round", "set", "sorted", "str",
    "sum", "tuple", "zip",
    "ArithmeticError", "Exception", "IndexError", "KeyError", "LookupError",
    "RuntimeError", "StopIteration", "TypeError", "ValueError", "ZeroDivisionError",
)


class ScriptState(enum.Enum):
    IDLE = "idle"
    LOADED = "loaded"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"
    ERRORED = "errored"


class ScriptCompileError(Exception):
    pass


# ---------------------------- Script API ---------------------------- #


class GraphSnapshot:
    """Immutable copy of node ids, labels and adjacency taken when a script is loaded."""

    __slots__ = ("_nodes", "_labels", "_adj")

    def __init__(self, graph: GraphModel) -> None:
        self._nodes: Tuple[int, ...] = tuple(graph.node_ids())
        self._labels: Dict[int, int] = {n: graph.nodes[n].label for n in self._nodes}
        self._adj: Dict[int, Tuple[int, ...]] = {n: tuple(graph.adj[n]) for n in self._nodes}

    def len(self) -> int:
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def get_nodes(self) -> List[int]:
        return list(self._nodes)

    def get_neighbours(self, node: int) -> List[int]:
        try:
            return list(self._adj[node])
        except (KeyError, TypeError):
            raise LookupError(f"no node {node!r} in graph") from None

    get_neighbors = get_neighbours

    def get_label(self, node: int) -> int:
        try:
            return self._labels[node]
        except (KeyError, TypeError):
            raise LookupError(f"no node {node!r} in graph") from None


def _script_print(*args: Any, sep: str = " ", **_: Any) -> None:
    script_logger.info(sep.join(str(a) for a in args))


def _make_api(buffer: CommandBuffer) -> Dict[str, Callable[..., None]]:
    def set_color(node_id: int, color_spec: str) -> None:
        if not isinstance(node_id, int) or not isinstance(color_spec, str):
            raise TypeError("set_color(node_id: int, color_spec: str)")
        buffer.push(SetColor(node_id, color_spec))

    def reset_color(node_id: int) -> None:
        if not isinstance(node_id, int):
            raise TypeError("reset_color(node_id: int)")
        buffer.push(ResetColor(node_id))

    return {"set_color": set_color, "reset_color": reset_color}


def compile_script(source: str, name: str = "<script>") -> Any:
    """Compile a script body into the code object of a module defining ``__script__``."""
    try:
        module = ast.parse(source, filename=name, mode="exec")
        wrapper = ast.parse("def __script__():\n    pass\n", filename=name, mode="exec")
        wrapper.body[0].body = module.body or [ast.Pass()]
        ast.fix_missing_locations(wrapper)
        return compile(wrapper, name, "exec")
    except (SyntaxError, ValueError, MemoryError, RecursionError) as exc:
        # deeply nested source exhausts the parser rather than failing to parse
        raise ScriptCompileError(f"{name}: {exc}") from exc


def _run_once(fn: Callable[[], Any]) -> Generator[None, None, None]:
    fn()
    yield from ()


# ---------------------------- Sessions ---------------------------- #


class ScriptSession:
    def __init__(self, name: str, graph: GraphModel, source: str, speed: float = 1.0) -> None:
        self.name = name
        self.buffer = CommandBuffer()
        self.namespace: Dict[str, Any] = {
            "__builtins__": {n: getattr(builtins, n) for n in _SAFE_BUILTIN_NAMES},
            "__name__": "__script__",
            "print": _script_print,
            "graph": GraphSnapshot(graph),
        }
        self.namespace.update(_make_api(self.buffer))
        exec(compile_script(source, name), self.namespace)
        fn = self.namespace["__script__"]
        self.thread: Generator[Any, None, None] = fn() if inspect.isgeneratorfunction(fn) else _run_once(fn)
        self.running: bool = False
        self.speed: float = speed
        self.steps: int = 0
        self.finished: bool = False
        self.error: Optional[BaseException] = None

    @property
    def state(self) -> ScriptState:
        if self.error is not None:
            return ScriptState.ERRORED
        if self.finished:
            return ScriptState.FINISHED
        if self.steps == 0 and not self.running:
            return ScriptState.LOADED
        return ScriptState.RUNNING if self.running else ScriptState.PAUSED

    def resume(self) -> None:
        if self.finished:
            return
        self.steps += 1
        try:
            next(self.thread)
        except StopIteration:
            self.finished = True
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            self.finished = True
            self.error = exc
            self.buffer.clear()
            logger.error("script %s failed at step %d: %s", self.name, self.steps, exc, exc_info=True)

    def close(self) -> None:
        try:
            self.thread.close()
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            logger.warning("script %s did not close cleanly: %s", self.name, exc)
        self.buffer.clear()


# ---------------------------- Host ---------------------------- #


class ScriptHost:
    def __init__(self, speed: float = 1.0) -> None:
        self.session: Optional[ScriptSession] = None
        self.default_speed = _clamp_speed(speed)
        self._elapsed: float = 0.0

    @property
    def state(self) -> ScriptState:
        return self.session.state if self.session is not None else ScriptState.IDLE

    @property
    def active(self) -> bool:
        return self.session is not None

    def load(self, source: str, graph: GraphModel, name: str = "<script>") -> bool:
        self.stop()
        try:
            self.session = ScriptSession(name, graph, source, speed=self.default_speed)
        except ScriptCompileError as exc:
            logger.error("could not compile script: %s", exc)
            return False
        logger.info("loaded script %s", name)
        return True

    def stop(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None
        self._elapsed = 0.0

    def step(self) -> None:
        session = self.session
        if session is None:
            return
        if session.finished:
            logger.info("script %s finished after %d steps", session.name, session.steps)
            self.session = None
            return
        session.resume()

    # ---- run/pause and speed ---- #
    @property
    def running(self) -> bool:
        return self.session is not None and self.session.running

    @running.setter
    def running(self, value: bool) -> None:
        if self.session is not None:
            self.session.running = bool(value)

    def toggle_running(self) -> bool:
        self.running = not self.running
        return self.running

    @property
    def speed(self) -> float:
        return self.session.speed if self.session is not None else self.default_speed

    @speed.setter
    def speed(self, value: float) -> None:
        value = _clamp_speed(value)
        self.default_speed = value
        if self.session is not None:
            self.session.speed = value

    def update(self, dt: float, manual: bool = False) -> bool:
        """Advance by at most one step: a manual request, or the auto-run cadence."""
        if self.session is None:
            self._elapsed = 0.0
            return False
        if manual:
            self.step()
            return True
        if not self.session.running:
            return False
        self._elapsed += dt
        if self._elapsed < 1.0 / self.session.speed:
            return False
        self._elapsed = 0.0
        self.step()
        return True

    def flush(self, channel: CommandChannel) -> int:
        session = self.session
        if session is None:
            return 0
        commands = session.buffer.drain()
        for command in commands:
            channel.publish(command)
        if session.finished:
            self.session = None
        return len(commands)


def _clamp_speed(value: float) -> float:
    return max(MIN_SPEED, min(MAX_SPEED, float(value)))


def available_scripts(directory: str) -> List[Path]:
    path = Path(directory)
    if not path.is_dir():
        return []
    return sorted(p for p in path.iterdir() if p.suffix == ".py" and p.is_file())


def read_script(path: Path) -> str:
    return Path(path).read_text(encoding="utf-8")
