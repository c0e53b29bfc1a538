from flask import Blueprint, current_app, jsonify
from flask_login import login_required

from quizroom import db
from quizroom.api import json_body
from quizroom.errors import NotFound, PermissionDenied, ValidationError
from quizroom.identity import SessionIdentity
from quizroom.models import User

users = Blueprint('users', __name__)

ROLES = ('admin', 'user')
MIN_PASSWORD_LENGTH = 6


def _require_user_manager():
    caller = SessionIdentity().current_caller()
    if not caller.can('canManageUsers'):
        raise PermissionDenied('Only admins can manage users')
    return caller


def _load_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')
    return user


@users.route('/', methods=['GET'])
@login_required
def list_users():
    _require_user_manager()
    return jsonify([u.to_dict() for u in User.query.order_by(User.username).all()])


@users.route('/', methods=['POST'])
@login_required
def create_user():
    caller = _require_user_manager()
    data = json_body()
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    role = data.get('role') or 'user'
    if not username:
        raise ValidationError('Username is required')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password should be at least {MIN_PASSWORD_LENGTH} characters')
    if role not in ROLES:
        raise ValidationError(f'Unknown role: {role}')
    if User.query.filter_by(username=username).first():
        raise ValidationError('User already exists')

    user = User(username=username, role=role)
    user.set_password(password)
    if role == 'admin':
        user.grant_all()
    user.apply_permissions(data.get('permissions') or {})
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"[user-create] user={user.username} role={role} by={caller.id}")
    return jsonify(user.to_dict()), 201


@users.route('/<int:user_id>/permissions', methods=['PATCH'])
@login_required
def update_permissions(user_id):
    caller = _require_user_manager()
    user = _load_user(user_id)
    user.apply_permissions(json_body())
    db.session.commit()
    current_app.logger.info(f"[user-permissions] user={user.username} by={caller.id} {user.permissions()}")
    return jsonify(user.to_dict())


@users.route('/<int:user_id>', methods=['DELETE'])
@login_required
def delete_user(user_id):
    caller = _require_user_manager()
    user = _load_user(user_id)
    if caller.id == f'user:{user.id}':
        raise ValidationError('You cannot delete your own account')
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info(f"[user-delete] user={user.username} by={caller.id}")
    return jsonify({'message': 'User deleted'})
