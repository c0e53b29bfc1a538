"""Store adapters.

Services receive a store instance explicitly; Flask request handlers fetch
the application's shared instance with :func:`get_store`.
"""

from flask import current_app

from .base import Store, new_key, normalize_path
from .memory import MemoryStore


def build_store(app, db) -> Store:
    backend = (app.config.get('STORE_BACKEND') or 'sql').lower()
    if backend == 'memory':
        store = MemoryStore(log=app.logger)
    elif backend == 'sql':
        from .sql import SqlStore
        store = SqlStore(db, log=app.logger)
    else:
        raise ValueError(f'Unknown STORE_BACKEND: {backend}')
    app.logger.info(f"[store] backend={backend}")
    return store


def get_store() -> Store:
    return current_app.extensions['quizroom_store']


__all__ = ['Store', 'MemoryStore', 'build_store', 'get_store', 'new_key', 'normalize_path']
