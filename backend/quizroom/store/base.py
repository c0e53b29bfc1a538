"""Path-addressed object store with live subscriptions.

Values live at slash-separated paths (``rooms/<id>``, ``answers/<roomId>/<key>``).
Reading a path returns the whole subtree below it; writing a path replaces it.
Subscribers receive the full current value at their path on attach and after
every change at, above, or below that path. There is no diffing contract.
"""

import copy
import logging
import queue
import secrets
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]


def normalize_path(path: str) -> str:
    segments = [s for s in (path or '').split('/') if s]
    return '/'.join(segments)


def split_path(path: str) -> List[str]:
    return [s for s in normalize_path(path).split('/') if s]


def paths_overlap(a: str, b: str) -> bool:
    """True when one path is equal to, an ancestor of, or a descendant of the other."""
    if not a or not b or a == b:
        return True
    return a.startswith(b + '/') or b.startswith(a + '/')


_key_lock = threading.Lock()
_last_key_time = 0


def new_key() -> str:
    """Time-ordered unique child key, in the spirit of push ids.

    Keys from one process sort in the order they were made, even when the
    clock repeats a reading.
    """
    global _last_key_time
    with _key_lock:
        stamp = max(time.time_ns(), _last_key_time + 1)
        _last_key_time = stamp
    return f'{stamp:016x}{secrets.token_hex(4)}'


class Store:
    """Base class: subscription bookkeeping plus the public read/write surface.

    Subclasses provide ``read``, ``_set`` and ``_lock``.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger
        self._subscribers: Dict[str, List[Tuple[int, Callback]]] = {}
        self._subscriber_lock = threading.Lock()
        self._next_token = 0

    # -- storage primitives -------------------------------------------------

    def read(self, path: str) -> Any:
        raise NotImplementedError

    def _set(self, path: str, value: Any) -> None:
        raise NotImplementedError

    @contextmanager
    def _lock(self, path: str, for_update: bool = False):
        raise NotImplementedError
        yield  # pragma: no cover

    # -- public surface -----------------------------------------------------

    def write(self, path: str, value: Any) -> None:
        path = normalize_path(path)
        with self._lock(path):
            self._set(path, value)
        self._notify(path)

    def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Shallow merge ``fields`` into the object at ``path``."""
        path = normalize_path(path)
        with self._lock(path):
            current = self.read(path)
            merged = dict(current) if isinstance(current, dict) else {}
            merged.update(fields)
            self._set(path, merged)
        self._notify(path)

    def delete(self, path: str) -> None:
        self.write(path, None)

    def append(self, path: str, value: Any) -> str:
        """Store ``value`` under a fresh child key of ``path`` and return the key."""
        key = new_key()
        self.write(f'{normalize_path(path)}/{key}', value)
        return key

    def transaction(self, path: str, fn: Callable[[Any], Any]) -> Any:
        """Atomically replace the value at ``path`` with ``fn(current)``.

        ``fn`` receives a private copy of the current value (or None). An
        exception raised by ``fn`` aborts the transaction and propagates.
        Returning a value equal to the current one skips the write.
        """
        path = normalize_path(path)
        with self._lock(path, for_update=True):
            current = self.read(path)
            new_value = fn(copy.deepcopy(current))
            changed = new_value != current
            if changed:
                self._set(path, new_value)
        if changed:
            self._notify(path)
        return new_value

    # -- subscriptions ------------------------------------------------------

    def subscribe(self, path: str, callback: Callback) -> Callable[[], None]:
        """Deliver the value at ``path`` now and on every change; returns an unsubscribe handle."""
        path = normalize_path(path)
        with self._subscriber_lock:
            self._next_token += 1
            token = self._next_token
            self._subscribers.setdefault(path, []).append((token, callback))
        callback(self.read(path))

        def unsubscribe() -> None:
            with self._subscriber_lock:
                entries = self._subscribers.get(path, [])
                remaining = [e for e in entries if e[0] != token]
                if remaining:
                    self._subscribers[path] = remaining
                else:
                    self._subscribers.pop(path, None)

        return unsubscribe

    def snapshots(self, path: str, timeout: Optional[float] = None) -> Iterator[Any]:
        """Lazy stream of full snapshots at ``path``.

        Infinite unless ``timeout`` elapses with no change. Each call starts a
        fresh stream whose first item is the current value.
        """
        pending: 'queue.Queue[Any]' = queue.Queue()
        unsubscribe = self.subscribe(path, pending.put)
        try:
            while True:
                try:
                    yield pending.get(timeout=timeout)
                except queue.Empty:
                    return
        finally:
            unsubscribe()

    def _notify(self, changed_path: str) -> None:
        with self._subscriber_lock:
            targets = [
                (path, list(entries))
                for path, entries in self._subscribers.items()
                if paths_overlap(path, changed_path)
            ]
        for path, entries in targets:
            value = self.read(path)
            for _, callback in entries:
                try:
                    callback(copy.deepcopy(value))
                except Exception:
                    self.log.exception(f"[store-notify] subscriber failed path={path}")
