import copy
import threading
from contextlib import contextmanager
from typing import Any, List

from sqlalchemy import or_

from quizroom.models import StoreNode
from .base import Store, split_path


def _ancestors(segments: List[str]) -> List[str]:
    """Proper ancestor paths, nearest first."""
    return ['/'.join(segments[:i]) for i in range(len(segments) - 1, 0, -1)]


def _dig(value: Any, segments: List[str]) -> Any:
    for segment in segments:
        if not isinstance(value, dict) or segment not in value:
            return None
        value = value[segment]
    return copy.deepcopy(value)


def _assign(tree: dict, segments: List[str], value: Any) -> None:
    node = tree
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    if value is None:
        node.pop(segments[-1], None)
    else:
        node[segments[-1]] = copy.deepcopy(value)


class SqlStore(Store):
    """Store backed by the ``store_node`` table.

    Each written path becomes one row holding a JSON value. Reads assemble
    subtrees from descendant rows, and writes below an existing row edit that
    row's JSON in place.
    """

    def __init__(self, db, log=None):
        super().__init__(log)
        self.db = db
        self._rlock = threading.RLock()

    def _row(self, path: str):
        return self.db.session.get(StoreNode, path)

    def _descendants(self, path: str):
        query = StoreNode.query
        if path:
            query = query.filter(StoreNode.path.startswith(path + '/', autoescape=True))
        return query.order_by(StoreNode.path).all()

    def read(self, path: str) -> Any:
        segments = split_path(path)
        path = '/'.join(segments)
        if segments:
            row = self._row(path)
            if row is not None:
                return copy.deepcopy(row.value)
            for ancestor in _ancestors(segments):
                row = self._row(ancestor)
                if row is not None:
                    return _dig(row.value, segments[len(split_path(ancestor)):])
        rows = self._descendants(path)
        if not rows:
            return None
        offset = len(segments)
        tree: dict = {}
        for row in rows:
            _assign(tree, split_path(row.path)[offset:], row.value)
        return tree

    def _set(self, path: str, value: Any) -> None:
        segments = split_path(path)
        if not segments:
            if value is not None:
                raise ValueError('Only deletes may target the store root')
            for row in self._descendants(''):
                self.db.session.delete(row)
            return
        for ancestor in _ancestors(segments):
            row = self._row(ancestor)
            if row is not None:
                data = copy.deepcopy(row.value) if isinstance(row.value, dict) else {}
                _assign(data, segments[len(split_path(ancestor)):], value)
                # Reassign so the JSON column is flagged dirty
                row.value = data
                return
        for row in self._descendants(path):
            self.db.session.delete(row)
        row = self._row(path)
        if value is None:
            if row is not None:
                self.db.session.delete(row)
        elif row is not None:
            row.value = copy.deepcopy(value)
        else:
            self.db.session.add(StoreNode(path=path, value=copy.deepcopy(value)))

    def _lock_rows(self, path: str) -> None:
        segments = split_path(path)
        exact = [path] + _ancestors(segments)
        (
            StoreNode.query
            .filter(or_(StoreNode.path.in_(exact), StoreNode.path.startswith(path + '/', autoescape=True)))
            .with_for_update()
            .all()
        )

    @contextmanager
    def _lock(self, path: str, for_update: bool = False):
        with self._rlock:
            try:
                if for_update:
                    self._lock_rows(path)
                yield
                self.db.session.commit()
            except Exception:
                self.db.session.rollback()
                raise
