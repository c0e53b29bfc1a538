import logging
from datetime import datetime, timezone
from typing import Optional

from flask import current_app, has_app_context

from quizroom.errors import NotFound, PermissionDenied
from quizroom.identity import Caller, IdentityProvider
from quizroom.store import Store
from . import paths


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: datetime) -> str:
    return moment.isoformat()


class BaseService:
    def __init__(self, store: Store, identity: IdentityProvider, log: Optional[logging.Logger] = None):
        self.store = store
        self.identity = identity
        self._log = log

    @property
    def log(self) -> logging.Logger:
        if self._log is not None:
            return self._log
        if has_app_context():
            return current_app.logger
        return logging.getLogger('quizroom')

    def caller(self) -> Caller:
        return self.identity.current_caller()

    def load_room(self, room_id: str) -> dict:
        """Fresh read of the room; cached copies are never trusted for mutations."""
        room = self.store.read(paths.room(room_id))
        if not room:
            raise NotFound('Room not found')
        return room

    def require_room_control(self, room_id: str) -> Caller:
        """Owner or admin only. Does its own read of the room for ``ownerId``."""
        caller = self.caller()
        room = self.load_room(room_id)
        if room.get('ownerId') != caller.id and not caller.is_admin:
            raise PermissionDenied('Only the room owner or an admin can do that')
        return caller

    def list_room_players(self, room_id: str) -> list:
        everyone = self.store.read(paths.PLAYERS) or {}
        return [p for p in everyone.values() if p.get('roomId') == room_id]
