import random
import string
import uuid
from typing import Optional

from quizroom.errors import NotFound, PermissionDenied, ValidationError
from . import paths
from .base import BaseService, isoformat, utcnow
from .rounds import RoundEngine

QUESTION_TYPES = ('true-false', 'multiple-choice', 'text-input')
ROOM_FIELDS = ('name', 'maxPlayers')


def _clean_text(value) -> str:
    return value.strip() if isinstance(value, str) else ''


def validate_question(data: dict, question_id: Optional[str] = None) -> dict:
    """Return a normalized question dict or raise ValidationError."""
    text = _clean_text(data.get('text'))
    if not text:
        raise ValidationError('Please enter a question')
    qtype = data.get('type')
    if qtype not in QUESTION_TYPES:
        raise ValidationError(f'Unknown question type: {qtype}')

    correct = data.get('correctAnswer')
    if isinstance(correct, (list, tuple)):
        correct = [_clean_text(c) for c in correct if _clean_text(c)]
        if not correct:
            raise ValidationError('Please set the correct answer')
        accepted = correct
    else:
        correct = _clean_text(correct)
        if not correct:
            raise ValidationError('Please set the correct answer')
        accepted = [correct]

    question = {
        'id': question_id or f'q_{uuid.uuid4().hex[:12]}',
        'text': text,
        'type': qtype,
        'correctAnswer': correct,
    }
    if qtype == 'multiple-choice':
        options = data.get('options') or []
        if not isinstance(options, list) or not options:
            raise ValidationError('Multiple choice questions need at least one option')
        options = [_clean_text(o) for o in options]
        if any(not o for o in options):
            raise ValidationError('Please fill all options')
        if any(a not in options for a in accepted):
            raise ValidationError('The correct answer must be one of the options')
        question['options'] = options
    elif qtype == 'true-false':
        if any(a.lower() not in ('true', 'false') for a in accepted):
            raise ValidationError('True/false questions need "true" or "false" as the answer')
    image_url = _clean_text(data.get('imageUrl'))
    if image_url:
        question['imageUrl'] = image_url
    return question


def _validate_max_players(value) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError('maxPlayers must be a number')
    if value < 1:
        raise ValidationError('maxPlayers must be at least 1')
    return value


class RoomManager(BaseService):
    """Room lifecycle: create, edit questions, publish, start, end, leaderboard flags, delete."""

    def __init__(self, store, identity, log=None, code_length: int = 6, rounds: Optional[RoundEngine] = None):
        super().__init__(store, identity, log)
        self.code_length = code_length
        self.rounds = rounds or RoundEngine(store, identity, log)

    def generate_room_code(self) -> str:
        """Generate a code that no active (not completed) room uses."""
        rooms = self.store.read(paths.ROOMS) or {}
        taken = {r.get('code') for r in rooms.values() if not r.get('isCompleted')}
        while True:
            code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=self.code_length))
            if code not in taken:
                return code

    def create_room(self, name: str, max_players: int, owner_name: Optional[str] = None) -> dict:
        caller = self.caller()
        if not caller.can('canCreateRooms'):
            raise PermissionDenied('You do not have permission to create rooms')
        name = _clean_text(name)
        if not name:
            raise ValidationError('Room name is required')
        room_id = f'room_{uuid.uuid4().hex[:16]}'
        room = {
            'id': room_id,
            'name': name,
            'code': self.generate_room_code(),
            'ownerId': caller.id,
            'ownerName': _clean_text(owner_name) or None,
            'maxPlayers': _validate_max_players(max_players),
            'questions': [],
            'isPublished': False,
            'isStarted': False,
            'isCompleted': False,
            'currentQuestionIndex': -1,
            'showLeaderboard': False,
            'showFinalResults': False,
            'revealedRounds': 0,
            'createdAt': isoformat(utcnow()),
        }
        self.store.write(paths.room(room_id), room)
        self.log.info(f"[room-create] room={room_id} code={room['code']} owner={caller.id}")
        return room

    def get_room(self, room_id: str) -> dict:
        return self.load_room(room_id)

    def list_rooms(self) -> list:
        rooms = self.store.read(paths.ROOMS) or {}
        return sorted(rooms.values(), key=lambda r: r.get('createdAt', ''), reverse=True)

    def update_room(self, room_id: str, fields: dict) -> dict:
        self.require_room_control(room_id)
        self.load_room(room_id)
        changes = {k: v for k, v in (fields or {}).items() if k in ROOM_FIELDS}
        if 'name' in changes:
            changes['name'] = _clean_text(changes['name'])
            if not changes['name']:
                raise ValidationError('Room name is required')
        if 'maxPlayers' in changes:
            changes['maxPlayers'] = _validate_max_players(changes['maxPlayers'])
        if changes:
            self.store.update(paths.room(room_id), changes)
        return self.load_room(room_id)

    # -- questions ----------------------------------------------------------

    def _editable_room(self, room_id: str) -> dict:
        self.require_room_control(room_id)
        room = self.load_room(room_id)
        if room.get('isStarted'):
            raise ValidationError('Questions cannot be edited after the quiz has started')
        return room

    def add_question(self, room_id: str, data: dict) -> dict:
        room = self._editable_room(room_id)
        question = validate_question(data or {})
        questions = (room.get('questions') or []) + [question]
        self.store.update(paths.room(room_id), {'questions': questions})
        return question

    def update_question(self, room_id: str, question_id: str, fields: dict) -> dict:
        room = self._editable_room(room_id)
        questions = room.get('questions') or []
        for i, existing in enumerate(questions):
            if existing.get('id') == question_id:
                merged = {**existing, **(fields or {})}
                if merged.get('type') != 'multiple-choice':
                    merged.pop('options', None)
                questions[i] = validate_question(merged, question_id=question_id)
                self.store.update(paths.room(room_id), {'questions': questions})
                return questions[i]
        raise NotFound('Question not found')

    def delete_question(self, room_id: str, question_id: str) -> None:
        room = self._editable_room(room_id)
        questions = room.get('questions') or []
        remaining = [q for q in questions if q.get('id') != question_id]
        if len(remaining) == len(questions):
            raise NotFound('Question not found')
        self.store.update(paths.room(room_id), {'questions': remaining})

    # -- lifecycle ----------------------------------------------------------

    def publish_room(self, room_id: str) -> dict:
        self.require_room_control(room_id)
        room = self.load_room(room_id)
        if not room.get('questions'):
            raise ValidationError('Add at least one question')
        self.store.update(paths.room(room_id), {'isPublished': True})
        self.log.info(f"[room-publish] room={room_id}")
        return self.load_room(room_id)

    def start_quiz(self, room_id: str) -> dict:
        self.require_room_control(room_id)
        room = self.load_room(room_id)
        if room.get('isStarted'):
            return room
        if not room.get('isPublished'):
            raise ValidationError('Publish the room before starting the quiz')
        self.store.update(paths.room(room_id), {'isStarted': True})
        self.log.info(f"[room-start] room={room_id}")
        return self.load_room(room_id)

    def end_quiz(self, room_id: str) -> dict:
        self.require_room_control(room_id)
        self.rounds.capture_round_statistics(room_id)
        self.load_room(room_id)
        self.store.update(paths.room(room_id), {
            'isStarted': True,
            'isCompleted': True,
            'showLeaderboard': False,
        })
        self.store.delete(paths.current_question(room_id))
        self.log.info(f"[room-end] room={room_id}")
        return self.load_room(room_id)

    def show_leaderboard(self, room_id: str) -> dict:
        self.require_room_control(room_id)
        self.load_room(room_id)
        self.store.update(paths.room(room_id), {'showLeaderboard': True})
        return self.load_room(room_id)

    def hide_leaderboard(self, room_id: str) -> dict:
        """Capture the round, then clear it and move the index on to the next question."""
        self.require_room_control(room_id)
        self.rounds.capture_round_statistics(room_id)
        room = self.load_room(room_id)
        total = len(room.get('questions') or [])
        next_index = min(room.get('currentQuestionIndex', -1) + 1, total)
        self.store.update(paths.room(room_id), {'showLeaderboard': False, 'currentQuestionIndex': next_index})
        self.store.delete(paths.current_question(room_id))
        # Already captured; leaving them would attach this round's answers to the next index
        self.store.delete(paths.answers(room_id))
        return self.load_room(room_id)

    def reveal_final_results(self, room_id: str) -> dict:
        self.require_room_control(room_id)
        room = self.load_room(room_id)
        if not room.get('isCompleted'):
            raise ValidationError('Final results are only available once the quiz has ended')
        self.store.update(paths.room(room_id), {'showFinalResults': True, 'revealedRounds': 1})
        return self.load_room(room_id)

    def set_revealed_rounds(self, room_id: str, count: int) -> dict:
        self.require_room_control(room_id)
        room = self.load_room(room_id)
        try:
            count = int(count)
        except (TypeError, ValueError):
            raise ValidationError('revealedRounds must be a number')
        total = len(room.get('questions') or [])
        self.store.update(paths.room(room_id), {'revealedRounds': max(1, min(count, max(total, 1)))})
        return self.load_room(room_id)

    def delete_room(self, room_id: str) -> None:
        """Delete the room and everything stored beside it, one independent delete each."""
        caller = self.require_room_control(room_id)
        room = self.load_room(room_id)
        if room.get('ownerId') != caller.id and not caller.can('canDeleteRooms'):
            raise PermissionDenied('You do not have permission to delete rooms')
        self.store.delete(paths.room(room_id))
        for player in self.list_room_players(room_id):
            self.store.delete(paths.player(player['id']))
        self.store.delete(paths.current_question(room_id))
        self.store.delete(paths.answers(room_id))
        self.store.delete(paths.round_statistics(room_id))
        self.store.delete(paths.question_settings(room_id))
        self.log.info(f"[room-delete] room={room_id} by={caller.id}")
