"""HTTP blueprints. Each request builds its services over the app's shared store."""

from flask import current_app, request

from quizroom.identity import SessionIdentity
from quizroom.services import ContestManager, LeaderboardProjector, PlayerRegistry, RoomManager, RoundEngine
from quizroom.store import get_store


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def round_engine() -> RoundEngine:
    cfg = current_app.config
    return RoundEngine(
        get_store(),
        SessionIdentity(),
        default_base_points=int(cfg.get('DEFAULT_BASE_POINTS', 100)),
        default_time_limit=int(cfg.get('DEFAULT_TIME_LIMIT_SEC', 30)),
        default_scoring_mode=cfg.get('DEFAULT_SCORING_MODE', 'time-based'),
    )


def room_manager() -> RoomManager:
    return RoomManager(
        get_store(),
        SessionIdentity(),
        code_length=int(current_app.config.get('ROOM_CODE_LENGTH', 6)),
        rounds=round_engine(),
    )


def player_registry() -> PlayerRegistry:
    return PlayerRegistry(get_store(), SessionIdentity())


def leaderboard() -> LeaderboardProjector:
    return LeaderboardProjector(get_store(), SessionIdentity())


def contest_manager() -> ContestManager:
    return ContestManager(get_store(), SessionIdentity())
