from datetime import datetime, timezone

from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user

from quizroom import db
from quizroom.identity import SessionIdentity
from quizroom.models import User

main = Blueprint('main', __name__)


@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        user.last_login = datetime.now(timezone.utc)
        db.session.commit()
        return jsonify({"success": True, "user": user.to_dict()})
    return jsonify({"success": False, "error": "Invalid username or password"}), 401


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@main.route('/me', methods=['GET'])
def me():
    caller = SessionIdentity().current_caller()
    payload = {'callerId': caller.id, 'permissions': caller.permissions}
    if current_user.is_authenticated:
        payload['user'] = current_user.to_dict()
    return jsonify(payload)
