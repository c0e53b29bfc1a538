import copy
import threading
from contextlib import contextmanager
from typing import Any

from .base import Store, split_path


class MemoryStore(Store):
    """Process-local nested-dict store. Used in tests and single-process dev runs."""

    def __init__(self, log=None):
        super().__init__(log)
        self._root: dict = {}
        self._rlock = threading.RLock()

    def read(self, path: str) -> Any:
        segments = split_path(path)
        with self._rlock:
            node: Any = self._root
            for segment in segments:
                if not isinstance(node, dict) or segment not in node:
                    return None
                node = node[segment]
            if segments and node == {}:
                return None
            return copy.deepcopy(node)

    def _set(self, path: str, value: Any) -> None:
        segments = split_path(path)
        if not segments:
            self._root = copy.deepcopy(value) if isinstance(value, dict) else {}
            return
        node = self._root
        trail = []
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[segment] = child
            trail.append((node, segment))
            node = child
        if value is None:
            node.pop(segments[-1], None)
            # Empty parents disappear, like any other absent value
            for parent, segment in reversed(trail):
                if parent[segment]:
                    break
                del parent[segment]
        else:
            node[segments[-1]] = copy.deepcopy(value)

    @contextmanager
    def _lock(self, path: str, for_update: bool = False):
        with self._rlock:
            yield
