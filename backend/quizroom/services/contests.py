import random
import string
import uuid

from quizroom.errors import NotFound, PermissionDenied, ValidationError
from . import paths
from .base import BaseService, isoformat, utcnow


class ContestManager(BaseService):
    """Groups rooms into a contest and totals each user's score across them."""

    def create_contest(self, name: str, room_ids: list) -> dict:
        caller = self.caller()
        if not caller.can('canCreateRooms'):
            raise PermissionDenied('You do not have permission to create contests')
        name = (name or '').strip()
        if not name:
            raise ValidationError('Contest name is required')
        if not room_ids:
            raise ValidationError('A contest needs at least one room')
        for room_id in room_ids:
            self.load_room(room_id)
        contest_id = f'contest_{uuid.uuid4().hex[:16]}'
        contest = {
            'id': contest_id,
            'name': name,
            'code': ''.join(random.choices(string.ascii_uppercase + string.digits, k=6)),
            'ownerId': caller.id,
            'roomIds': list(dict.fromkeys(room_ids)),
            'createdAt': isoformat(utcnow()),
        }
        self.store.write(paths.contest(contest_id), contest)
        self.log.info(f"[contest-create] contest={contest_id} rooms={len(contest['roomIds'])}")
        return contest

    def get_contest(self, contest_id: str) -> dict:
        contest = self.store.read(paths.contest(contest_id))
        if not contest:
            raise NotFound('Contest not found')
        return contest

    def contest_leaderboard(self, contest_id: str) -> list:
        contest = self.get_contest(contest_id)
        totals = {}
        for room_id in contest.get('roomIds') or []:
            for player in self.list_room_players(room_id):
                user_id = player.get('userId')
                entry = totals.setdefault(user_id, {
                    'userId': user_id,
                    'displayName': player.get('name'),
                    'totalScore': 0,
                    'rooms': {},
                    '_seen': '',
                })
                score = player.get('score', 0)
                entry['totalScore'] += score
                entry['rooms'][room_id] = score
                joined = player.get('rejoinedAt') or player.get('joinedAt') or ''
                if joined >= entry['_seen']:
                    entry['displayName'] = player.get('name')
                    entry['_seen'] = joined
        board = sorted(totals.values(), key=lambda e: (-e['totalScore'], (e['displayName'] or '').lower()))
        for entry in board:
            entry.pop('_seen')
        return board
