"""Read-side standings. Nothing here writes to the store."""

from typing import Optional

from . import paths
from .base import BaseService


def _rank(entries: list, key: str) -> list:
    """Sort by ``key`` descending (name breaks ties) and attach 1-based ranks; equal scores share a rank."""
    ordered = sorted(entries, key=lambda e: (-e.get(key, 0), (e.get('name') or '').lower()))
    previous = None
    rank = 0
    for position, entry in enumerate(ordered, start=1):
        if entry.get(key, 0) != previous:
            rank = position
            previous = entry.get(key, 0)
        entry['rank'] = rank
    return ordered


def round_summary(stat: dict) -> dict:
    """Counts and averages for one captured round, answers best-first."""
    answers = stat.get('answers') or []
    ordered = sorted(
        answers,
        key=lambda a: (not a.get('isCorrect'), -a.get('pointsEarned', 0), a.get('timeTaken', 0)),
    )
    return {
        'questionIndex': stat.get('questionIndex'),
        'questionText': stat.get('questionText'),
        'answerCount': len(answers),
        'correctCount': sum(1 for a in answers if a.get('isCorrect')),
        'totalPoints': sum(a.get('pointsEarned', 0) for a in answers),
        'averageTime': (sum(a.get('timeTaken', 0) for a in answers) / len(answers)) if answers else 0,
        'answers': ordered,
    }


class LeaderboardProjector(BaseService):

    def standings(self, room_id: str, online_only: bool = True) -> list:
        self.load_room(room_id)
        players = self.list_room_players(room_id)
        if online_only:
            players = [p for p in players if p.get('isOnline')]
        entries = [
            {'playerId': p['id'], 'name': p.get('name'), 'score': p.get('score', 0), 'isOnline': p.get('isOnline')}
            for p in players
        ]
        return _rank(entries, 'score')

    def progressive(self, room_id: str, revealed_rounds: Optional[int] = None) -> dict:
        """Cumulative scores over the first N captured rounds, for a staged final reveal."""
        room = self.load_room(room_id)
        total = len(room.get('questions') or [])
        if revealed_rounds is None:
            revealed_rounds = room.get('revealedRounds') or 1
        revealed_rounds = max(1, min(int(revealed_rounds), max(total, 1)))

        stats = self.store.read(paths.round_statistics(room_id)) or {}
        rounds = sorted(stats.values(), key=lambda s: s.get('questionIndex', 0))[:revealed_rounds]

        totals = {p['id']: 0 for p in self.list_room_players(room_id)}
        names = {p['id']: p.get('name') for p in self.list_room_players(room_id)}
        for stat in rounds:
            for answer in stat.get('answers') or []:
                pid = answer.get('playerId')
                totals[pid] = totals.get(pid, 0) + answer.get('pointsEarned', 0)
                names.setdefault(pid, answer.get('playerName'))
        entries = [{'playerId': pid, 'name': names.get(pid), 'score': score} for pid, score in totals.items()]
        return {
            'revealedRounds': revealed_rounds,
            'totalRounds': total,
            'standings': _rank(entries, 'score'),
            'rounds': [round_summary(s) for s in rounds],
        }

    def summary(self, room_id: str) -> dict:
        standings = self.standings(room_id)
        scores = [e['score'] for e in standings]
        return {
            'winner': standings[0] if standings else None,
            'topThree': standings[:3],
            'averageScore': round(sum(scores) / len(scores)) if scores else 0,
            'playerCount': len(standings),
        }
