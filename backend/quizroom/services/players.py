import uuid

from quizroom.errors import NotFound, PermissionDenied, ValidationError
from . import paths
from .base import BaseService, isoformat, utcnow


class PlayerRegistry(BaseService):
    """Join, rejoin, ready and online tracking.

    Leaving never deletes a player: the record (and its score) is what a
    reconnecting caller gets back on rejoin.
    """

    def find_room_by_code(self, code: str):
        """Room with this code, preferring one that is not completed; codes are reused after a quiz ends."""
        code = (code or '').strip().upper()
        rooms = self.store.read(paths.ROOMS) or {}
        matches = [r for r in rooms.values() if r.get('code') == code]
        for room in matches:
            if not room.get('isCompleted'):
                return room
        return matches[0] if matches else None

    def _existing_player(self, room_id: str, user_id: str):
        for player in self.list_room_players(room_id):
            if player.get('userId') == user_id:
                return player
        return None

    def join_room(self, code: str, name: str) -> dict:
        caller = self.caller()
        if not caller.can('canJoinRooms'):
            raise PermissionDenied('You do not have permission to join rooms')
        name = (name or '').strip()
        if not name:
            raise ValidationError('Player name is required')
        room = self.find_room_by_code(code)
        if not room:
            raise NotFound('Room not found')
        room_id = room['id']

        existing = self._existing_player(room_id, caller.id)
        if existing:
            now = isoformat(utcnow())
            self.store.update(paths.player(existing['id']), {
                'isOnline': True,
                'name': name,
                'rejoinedAt': now,
            })
            self.log.info(f"[rejoin] room={room_id} player={existing['id']} score={existing.get('score', 0)}")
            return self.store.read(paths.player(existing['id']))

        if not room.get('isPublished'):
            raise ValidationError('Room not published yet')
        if room.get('isStarted'):
            raise ValidationError('Quiz already started, rejoin only')
        online = [p for p in self.list_room_players(room_id) if p.get('isOnline')]
        if len(online) >= int(room.get('maxPlayers') or 0):
            raise ValidationError('Room is full')

        player_id = f'player_{uuid.uuid4().hex[:16]}'
        player = {
            'id': player_id,
            'name': name,
            'roomId': room_id,
            'userId': caller.id,
            'score': 0,
            'isReady': False,
            'isOnline': True,
            'joinedAt': isoformat(utcnow()),
        }
        self.store.write(paths.player(player_id), player)
        self.log.info(f"[join] room={room_id} player={player_id} name={name}")
        return player

    def can_rejoin(self, code: str) -> dict:
        caller = self.caller()
        room = self.find_room_by_code(code)
        if not room:
            return {'canRejoin': False, 'message': 'Room not found'}
        existing = self._existing_player(room['id'], caller.id)
        if existing:
            return {'canRejoin': True, 'playerName': existing.get('name'), 'playerId': existing['id']}
        if room.get('isStarted'):
            return {'canRejoin': False, 'message': 'Quiz already started and you were not part of it'}
        return {'canRejoin': False, 'message': 'You can join this room as a new player'}

    def _load_player(self, player_id: str) -> dict:
        player = self.store.read(paths.player(player_id))
        if not player:
            raise NotFound('Player not found')
        return player

    def get_player(self, player_id: str) -> dict:
        return self._load_player(player_id)

    def set_player_ready(self, player_id: str, ready: bool) -> dict:
        self._load_player(player_id)
        self.store.update(paths.player(player_id), {'isReady': bool(ready)})
        return self._load_player(player_id)

    def leave_room(self, player_id: str) -> dict:
        self._load_player(player_id)
        self.store.update(paths.player(player_id), {'isOnline': False})
        self.log.info(f"[leave] player={player_id}")
        return self._load_player(player_id)

    def list_players(self, room_id: str) -> list:
        self.load_room(room_id)
        return sorted(self.list_room_players(room_id), key=lambda p: p.get('joinedAt', ''))
