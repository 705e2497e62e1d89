"""Command vocabulary emitted by scripts and the queues that carry it to the host."""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Union


@dataclass(frozen=True)
class SetColor:
    node: int
    color: str


@dataclass(frozen=True)
class ResetColor:
    node: int


ScriptCommand = Union[SetColor, ResetColor]


class CommandBuffer:
    """Mutex-guarded queue between script emission and the host's flush."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: List[ScriptCommand] = []

    def push(self, command: ScriptCommand) -> None:
        with self._lock:
            self._items.append(command)

    def drain(self) -> List[ScriptCommand]:
        with self._lock:
            items, self._items = self._items, []
        return items

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class CommandChannel:
    """The host's general command channel; drained once per tick by command application."""

    def __init__(self) -> None:
        self._queue: Deque[ScriptCommand] = deque()

    def publish(self, command: ScriptCommand) -> None:
        self._queue.append(command)

    def drain(self) -> List[ScriptCommand]:
        items = list(self._queue)
        self._queue.clear()
        return items

    def __len__(self) -> int:
        return len(self._queue)
