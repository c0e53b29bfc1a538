"""Caller identity for the services.

Services never touch ``flask_login`` directly; they ask an identity provider
for the current caller so tests can pin one with :class:`StaticIdentity`.
"""

import uuid
from dataclasses import dataclass, field
from typing import Dict

from flask import session
from flask_login import current_user

PERMISSIONS = ('canCreateRooms', 'canJoinRooms', 'canManageUsers', 'canDeleteRooms')

GUEST_PERMISSIONS = {
    'canCreateRooms': False,
    'canJoinRooms': True,
    'canManageUsers': False,
    'canDeleteRooms': False,
}


@dataclass(frozen=True)
class Caller:
    id: str
    permissions: Dict[str, bool] = field(default_factory=dict)

    def can(self, permission: str) -> bool:
        return bool(self.permissions.get(permission))

    @property
    def is_admin(self) -> bool:
        return self.can('canManageUsers')


class IdentityProvider:
    def current_caller(self) -> Caller:
        raise NotImplementedError


class StaticIdentity(IdentityProvider):
    """Always returns the same caller; handy in tests and scripts."""

    def __init__(self, caller_id: str, **permissions):
        perms = {name: False for name in PERMISSIONS}
        perms.update(permissions)
        self.caller = Caller(id=str(caller_id), permissions=perms)

    def current_caller(self) -> Caller:
        return self.caller


class SessionIdentity(IdentityProvider):
    """Logged-in users carry their stored permissions; anonymous players get a guest id."""

    def current_caller(self) -> Caller:
        if current_user.is_authenticated:
            return Caller(id=f'user:{current_user.id}', permissions=current_user.permissions())
        guest_id = session.get('guest_id')
        if not guest_id:
            guest_id = uuid.uuid4().hex
            session['guest_id'] = guest_id
            session.permanent = True
        return Caller(id=f'guest:{guest_id}', permissions=dict(GUEST_PERMISSIONS))
