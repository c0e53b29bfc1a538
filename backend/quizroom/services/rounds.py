"""Round lifecycle: publish a question, take answers, capture statistics once.

Per room the engine moves Idle -> RoundActive -> Idle (stats captured) and
eventually Completed. A round's scoring parameters are written twice: into the
ActiveRound record and into a durable ``questionSettings`` snapshot, so the
statistics can still be rebuilt after the ActiveRound has been cleared.
"""

import math
from datetime import timedelta
from typing import Optional

from quizroom.errors import AlreadyAnswered, InvalidState, NotFound, ValidationError
from quizroom.store import new_key
from . import paths
from .base import BaseService, isoformat, utcnow
from .scoring import SCORING_MODES, TIME_BASED, is_correct, points_for


class RoundEngine(BaseService):

    def __init__(
        self,
        store,
        identity,
        log=None,
        default_base_points: int = 100,
        default_time_limit: int = 30,
        default_scoring_mode: str = TIME_BASED,
    ):
        super().__init__(store, identity, log)
        self.default_base_points = default_base_points
        self.default_time_limit = default_time_limit
        self.default_scoring_mode = default_scoring_mode

    # -- host side ----------------------------------------------------------

    def publish_question(self, room_id: str, index: int, base_points: int, scoring_mode: str, time_limit: int) -> dict:
        self.require_room_control(room_id)
        room = self.load_room(room_id)
        questions = room.get('questions') or []
        if not isinstance(index, int) or not 0 <= index < len(questions):
            raise NotFound('Question not found')
        if not room.get('isStarted'):
            raise ValidationError('Start the quiz before publishing questions')
        if room.get('isCompleted'):
            raise ValidationError('Quiz already completed')
        if scoring_mode not in SCORING_MODES:
            raise ValidationError(f'Unknown scoring mode: {scoring_mode}')
        if base_points is None or base_points <= 0:
            raise ValidationError('Base points must be positive')
        if time_limit is None or time_limit <= 0:
            raise ValidationError('Time limit must be positive')

        started = utcnow()
        settings = {'basePoints': base_points, 'scoringMode': scoring_mode, 'timeLimit': time_limit}
        active = {
            'questionIndex': index,
            'question': questions[index],
            'startedAt': isoformat(started),
            'endsAt': isoformat(started + timedelta(seconds=time_limit)),
            **settings,
        }
        self.store.update(paths.room(room_id), {'currentQuestionIndex': index, 'showLeaderboard': False})
        self.store.write(paths.current_question(room_id), active)
        self.store.write(paths.question_settings(room_id, index), settings)
        self.store.delete(paths.answers(room_id))
        self.log.info(
            f"[round-publish] room={room_id} index={index} mode={scoring_mode} points={base_points} limit={time_limit}s"
        )
        return active

    def next_question(self, room_id: str) -> Optional[dict]:
        """Close the current round: capture its statistics and clear the live state."""
        self.require_room_control(room_id)
        stats = self.capture_round_statistics(room_id)
        self.store.delete(paths.current_question(room_id))
        self.store.delete(paths.answers(room_id))
        self.log.info(f"[round-next] room={room_id}")
        return stats

    # -- player side --------------------------------------------------------

    def submit_answer(self, player_id: str, raw_answer: str, time_taken: float) -> dict:
        player = self.store.read(paths.player(player_id))
        if not player:
            raise NotFound('Player not found')
        room_id = player['roomId']
        active = self.store.read(paths.current_question(room_id))
        room = self.store.read(paths.room(room_id))
        if not active or not room:
            raise InvalidState('No active question')
        if raw_answer is None or not str(raw_answer).strip():
            raise ValidationError('Answer is required')
        try:
            time_taken = float(time_taken)
        except (TypeError, ValueError):
            raise ValidationError('timeTaken must be a number')
        if not math.isfinite(time_taken):
            raise ValidationError('timeTaken must be a finite number')
        if time_taken < 0:
            raise ValidationError('timeTaken cannot be negative')

        correct = is_correct(raw_answer, active['question'].get('correctAnswer'))
        key = new_key()
        recorded = {}

        def record(existing):
            existing = existing or {}
            if any(a.get('playerId') == player_id for a in existing.values()):
                raise AlreadyAnswered('You have already answered this question')
            points = 0
            if correct:
                correct_so_far = sum(1 for a in existing.values() if a.get('isCorrect'))
                points = points_for(
                    active['scoringMode'], active['basePoints'], active['timeLimit'], time_taken, correct_so_far
                )
            recorded.update({
                'playerId': player_id,
                'playerName': player.get('name'),
                'answer': str(raw_answer),
                'timeTaken': time_taken,
                'isCorrect': correct,
                'pointsEarned': points,
                'submittedAt': isoformat(utcnow()),
            })
            existing[key] = dict(recorded)
            return existing

        self.store.transaction(paths.answers(room_id), record)
        if recorded['pointsEarned']:
            self.store.transaction(
                f"{paths.player(player_id)}/score",
                lambda score: (score or 0) + recorded['pointsEarned'],
            )
        self.log.info(
            f"[answer] room={room_id} player={player_id} correct={correct} points={recorded['pointsEarned']} t={time_taken:.2f}s"
        )
        return recorded

    # -- statistics ---------------------------------------------------------

    def _round_parameters(self, room: dict, room_id: str, index: int) -> dict:
        """ActiveRound first, then the room's question plus questionSettings, then defaults."""
        active = self.store.read(paths.current_question(room_id))
        if active and active.get('questionIndex', index) == index:
            question = active.get('question') or {}
            return {
                'questionText': question.get('text', ''),
                'correctAnswer': question.get('correctAnswer', ''),
                'scoringMode': active.get('scoringMode', self.default_scoring_mode),
                'basePoints': active.get('basePoints', self.default_base_points),
                'timeLimit': active.get('timeLimit', self.default_time_limit),
            }
        questions = room.get('questions') or []
        question = questions[index] if index < len(questions) else {}
        settings = self.store.read(paths.question_settings(room_id, index)) or {}
        return {
            'questionText': question.get('text', ''),
            'correctAnswer': question.get('correctAnswer', ''),
            'scoringMode': settings.get('scoringMode', self.default_scoring_mode),
            'basePoints': settings.get('basePoints', self.default_base_points),
            'timeLimit': settings.get('timeLimit', self.default_time_limit),
        }

    def capture_round_statistics(self, room_id: str) -> Optional[dict]:
        """Persist statistics for the room's current round, at most once per question index.

        Returns the new record, or None when there was nothing to capture or the
        round was already captured.
        """
        room = self.load_room(room_id)
        index = room.get('currentQuestionIndex', -1)
        stored = self.store.read(paths.answers(room_id)) or {}
        answers = [stored[k] for k in sorted(stored)]
        if index is None or index < 0 or not answers:
            return None

        record = {
            'questionIndex': index,
            **self._round_parameters(room, room_id, index),
            'answers': answers,
            'capturedAt': isoformat(utcnow()),
        }
        written = []

        def capture(existing):
            existing = existing or {}
            if any(s.get('questionIndex') == index for s in existing.values()):
                return existing
            existing[new_key()] = record
            written.append(record)
            return existing

        self.store.transaction(paths.round_statistics(room_id), capture)
        if not written:
            self.log.info(f"[stats-skip] room={room_id} index={index} already captured")
            return None
        self.log.info(f"[stats-capture] room={room_id} index={index} answers={len(answers)}")
        return record

    # -- reads --------------------------------------------------------------

    def current_round(self, room_id: str) -> Optional[dict]:
        self.load_room(room_id)
        return self.store.read(paths.current_question(room_id))

    def list_answers(self, room_id: str) -> list:
        self.load_room(room_id)
        answers = self.store.read(paths.answers(room_id)) or {}
        return [answers[k] for k in sorted(answers)]

    def list_statistics(self, room_id: str) -> list:
        self.load_room(room_id)
        stats = self.store.read(paths.round_statistics(room_id)) or {}
        return sorted(stats.values(), key=lambda s: s.get('questionIndex', 0))
