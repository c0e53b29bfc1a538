from flask import Blueprint, jsonify

from quizroom.errors import PermissionDenied, ValidationError
from quizroom.identity import SessionIdentity
from quizroom.api import json_body, player_registry, round_engine

players = Blueprint('players', __name__)


def _own_player(player_id):
    """Players act only on their own record; admins may act on anyone's."""
    registry = player_registry()
    player = registry.get_player(player_id)
    caller = SessionIdentity().current_caller()
    if player.get('userId') != caller.id and not caller.is_admin:
        raise PermissionDenied('That player belongs to someone else')
    return registry


@players.route('/join', methods=['POST'])
def join_room():
    data = json_body()
    code = data.get('code')
    name = data.get('name')
    if not all([code, name]):
        raise ValidationError('Room code and player name are required')
    player = player_registry().join_room(code, name)
    return jsonify(player), 201


@players.route('/rejoin/<string:code>', methods=['GET'])
def can_rejoin(code):
    return jsonify(player_registry().can_rejoin(code))


@players.route('/<string:player_id>/ready', methods=['POST'])
def set_ready(player_id):
    data = json_body()
    registry = _own_player(player_id)
    return jsonify(registry.set_player_ready(player_id, bool(data.get('ready', True))))


@players.route('/<string:player_id>/leave', methods=['POST'])
def leave_room(player_id):
    registry = _own_player(player_id)
    return jsonify(registry.leave_room(player_id))


@players.route('/<string:player_id>/answer', methods=['POST'])
def submit_answer(player_id):
    data = json_body()
    _own_player(player_id)
    answer = round_engine().submit_answer(player_id, data.get('answer'), data.get('timeTaken'))
    return jsonify(answer), 201
