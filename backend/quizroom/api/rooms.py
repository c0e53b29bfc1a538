from flask import Blueprint, jsonify, request
from flask_login import login_required

from quizroom.errors import ValidationError
from quizroom.api import json_body, leaderboard, player_registry, room_manager, round_engine

rooms = Blueprint('rooms', __name__)


def _int_field(data, name, default=None):
    value = data.get(name, default)
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be a number')


@rooms.route('/', methods=['POST'])
@login_required
def create_room():
    data = json_body()
    room = room_manager().create_room(
        data.get('name'),
        _int_field(data, 'maxPlayers', 50),
        owner_name=data.get('ownerName'),
    )
    return jsonify(room), 201


@rooms.route('/', methods=['GET'])
def list_rooms():
    return jsonify(room_manager().list_rooms())


@rooms.route('/<string:room_id>', methods=['GET'])
def get_room(room_id):
    return jsonify(room_manager().get_room(room_id))


@rooms.route('/<string:room_id>', methods=['PATCH'])
@login_required
def update_room(room_id):
    return jsonify(room_manager().update_room(room_id, json_body()))


@rooms.route('/<string:room_id>', methods=['DELETE'])
@login_required
def delete_room(room_id):
    room_manager().delete_room(room_id)
    return jsonify({'message': 'Room deleted'})


# ---- Questions ----

@rooms.route('/<string:room_id>/questions', methods=['POST'])
@login_required
def add_question(room_id):
    return jsonify(room_manager().add_question(room_id, json_body())), 201


@rooms.route('/<string:room_id>/questions/<string:question_id>', methods=['PATCH'])
@login_required
def update_question(room_id, question_id):
    return jsonify(room_manager().update_question(room_id, question_id, json_body()))


@rooms.route('/<string:room_id>/questions/<string:question_id>', methods=['DELETE'])
@login_required
def delete_question(room_id, question_id):
    room_manager().delete_question(room_id, question_id)
    return jsonify({'message': 'Question deleted'})


# ---- Lifecycle ----

@rooms.route('/<string:room_id>/publish', methods=['POST'])
@login_required
def publish_room(room_id):
    return jsonify(room_manager().publish_room(room_id))


@rooms.route('/<string:room_id>/start', methods=['POST'])
@login_required
def start_quiz(room_id):
    return jsonify(room_manager().start_quiz(room_id))


@rooms.route('/<string:room_id>/end', methods=['POST'])
@login_required
def end_quiz(room_id):
    return jsonify(room_manager().end_quiz(room_id))


@rooms.route('/<string:room_id>/leaderboard/show', methods=['POST'])
@login_required
def show_leaderboard(room_id):
    return jsonify(room_manager().show_leaderboard(room_id))


@rooms.route('/<string:room_id>/leaderboard/hide', methods=['POST'])
@login_required
def hide_leaderboard(room_id):
    return jsonify(room_manager().hide_leaderboard(room_id))


@rooms.route('/<string:room_id>/results/reveal', methods=['POST'])
@login_required
def reveal_final_results(room_id):
    return jsonify(room_manager().reveal_final_results(room_id))


@rooms.route('/<string:room_id>/results/rounds', methods=['POST'])
@login_required
def set_revealed_rounds(room_id):
    data = json_body()
    return jsonify(room_manager().set_revealed_rounds(room_id, _int_field(data, 'revealedRounds', 0)))


# ---- Rounds ----

@rooms.route('/<string:room_id>/questions/<int:index>/publish', methods=['POST'])
@login_required
def publish_question(room_id, index):
    data = json_body()
    active = round_engine().publish_question(
        room_id,
        index,
        _int_field(data, 'basePoints', 100),
        data.get('scoringMode', 'time-based'),
        _int_field(data, 'timeLimit', 30),
    )
    return jsonify(active)


@rooms.route('/<string:room_id>/next', methods=['POST'])
@login_required
def next_question(room_id):
    stats = round_engine().next_question(room_id)
    return jsonify({'captured': stats})


@rooms.route('/<string:room_id>/round', methods=['GET'])
def current_round(room_id):
    return jsonify({'round': round_engine().current_round(room_id)})


@rooms.route('/<string:room_id>/answers', methods=['GET'])
def list_answers(room_id):
    return jsonify(round_engine().list_answers(room_id))


@rooms.route('/<string:room_id>/statistics', methods=['GET'])
def list_statistics(room_id):
    return jsonify(round_engine().list_statistics(room_id))


# ---- Read side ----

@rooms.route('/<string:room_id>/players', methods=['GET'])
def list_players(room_id):
    return jsonify(player_registry().list_players(room_id))


@rooms.route('/<string:room_id>/leaderboard', methods=['GET'])
def get_leaderboard(room_id):
    online_only = request.args.get('all') not in ('1', 'true')
    projector = leaderboard()
    return jsonify({
        'standings': projector.standings(room_id, online_only=online_only),
        'summary': projector.summary(room_id),
    })


@rooms.route('/<string:room_id>/leaderboard/progressive', methods=['GET'])
def get_progressive_leaderboard(room_id):
    revealed = request.args.get('rounds', type=int)
    return jsonify(leaderboard().progressive(room_id, revealed_rounds=revealed))
