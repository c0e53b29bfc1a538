"""Socket.IO bridge for live store snapshots.

A client sends ``watch {path}`` and receives ``snapshot {path, value}`` right
away and after every change to that path. One store subscription per watched
path is shared by all sockets in the ``watch:<path>`` room.
"""

import threading
from typing import Callable, Dict, Set

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from quizroom import socketio
from quizroom.store import Store, normalize_path

NAMESPACE = '/ws'


def _room_for(path: str) -> str:
    return f'watch:{path}'


class SnapshotRelay:
    """Reference-counted store subscriptions fanned out to Socket.IO rooms."""

    def __init__(self, store: Store, namespace: str = NAMESPACE):
        self.store = store
        self.namespace = namespace
        self._lock = threading.Lock()
        self._unsubscribe: Dict[str, Callable[[], None]] = {}
        self._counts: Dict[str, int] = {}
        self._sid_paths: Dict[str, Set[str]] = {}

    def _broadcaster(self, path: str):
        primed = []

        def push(value):
            # The store delivers the current value on attach; the watcher already has it
            if not primed:
                primed.append(True)
                return
            socketio.emit('snapshot', {'path': path, 'value': value}, to=_room_for(path), namespace=self.namespace)

        return push

    def watch(self, sid: str, path: str) -> None:
        with self._lock:
            paths = self._sid_paths.setdefault(sid, set())
            if path in paths:
                return
            paths.add(path)
            self._counts[path] = self._counts.get(path, 0) + 1
            if self._counts[path] == 1:
                self._unsubscribe[path] = self.store.subscribe(path, self._broadcaster(path))

    def unwatch(self, sid: str, path: str) -> None:
        with self._lock:
            paths = self._sid_paths.get(sid, set())
            if path not in paths:
                return
            paths.discard(path)
            self._counts[path] = self._counts.get(path, 1) - 1
            if self._counts[path] > 0:
                return
            self._counts.pop(path, None)
            unsubscribe = self._unsubscribe.pop(path, None)
            if unsubscribe:
                unsubscribe()

    def drop(self, sid: str) -> None:
        with self._lock:
            watched = list(self._sid_paths.get(sid, set()))
        for path in watched:
            self.unwatch(sid, path)
        with self._lock:
            self._sid_paths.pop(sid, None)

    def watched_paths(self, sid: str) -> Set[str]:
        with self._lock:
            return set(self._sid_paths.get(sid, set()))


def _relay() -> SnapshotRelay:
    return current_app.extensions['quizroom_relay']


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    _relay().drop(_get_sid())


def handle_watch(data):
    path = normalize_path((data or {}).get('path') or '')
    if not path:
        emit('error', {'message': 'path is required'})
        return
    relay = _relay()
    join_room(_room_for(path))
    emit('snapshot', {'path': path, 'value': relay.store.read(path)})
    relay.watch(_get_sid(), path)
    current_app.logger.info(f"[watch] sid={_get_sid()} path={path}")


def handle_unwatch(data):
    path = normalize_path((data or {}).get('path') or '')
    if not path:
        emit('error', {'message': 'path is required'})
        return
    leave_room(_room_for(path))
    _relay().unwatch(_get_sid(), path)
    emit('unwatched', {'path': path})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(app, store: Store, testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    app.extensions['quizroom_relay'] = SnapshotRelay(store)

    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('watch', handle_watch, namespace=namespace)
        socketio.on_event('unwatch', handle_unwatch, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
