"""Quiz domain services: rooms, players, rounds, scoring and leaderboards.

Everything here talks to an injected store and identity provider and raises
``quizroom.errors`` exceptions. HTTP routes build them per request.
"""

from .rooms import RoomManager
from .players import PlayerRegistry
from .rounds import RoundEngine
from .leaderboard import LeaderboardProjector
from .contests import ContestManager

__all__ = ['RoomManager', 'PlayerRegistry', 'RoundEngine', 'LeaderboardProjector', 'ContestManager']
