from flask import Blueprint, jsonify
from flask_login import login_required

from quizroom.api import contest_manager, json_body

contests = Blueprint('contests', __name__)


@contests.route('/', methods=['POST'])
@login_required
def create_contest():
    data = json_body()
    contest = contest_manager().create_contest(data.get('name'), data.get('roomIds') or [])
    return jsonify(contest), 201


@contests.route('/<string:contest_id>', methods=['GET'])
def get_contest(contest_id):
    return jsonify(contest_manager().get_contest(contest_id))


@contests.route('/<string:contest_id>/leaderboard', methods=['GET'])
def get_contest_leaderboard(contest_id):
    return jsonify(contest_manager().contest_leaderboard(contest_id))
