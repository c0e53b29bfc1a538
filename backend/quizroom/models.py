from quizroom import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(16), default='user', nullable=False)  # admin, user
    can_create_rooms = db.Column(db.Boolean, default=True, nullable=False)
    can_join_rooms = db.Column(db.Boolean, default=True, nullable=False)
    can_manage_users = db.Column(db.Boolean, default=False, nullable=False)
    can_delete_rooms = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    last_login = db.Column(db.DateTime, nullable=True)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def grant_all(self):
        self.can_create_rooms = True
        self.can_join_rooms = True
        self.can_manage_users = True
        self.can_delete_rooms = True

    def apply_permissions(self, permissions):
        """Merge camelCase permission flags; unknown keys are ignored."""
        columns = {
            'canCreateRooms': 'can_create_rooms',
            'canJoinRooms': 'can_join_rooms',
            'canManageUsers': 'can_manage_users',
            'canDeleteRooms': 'can_delete_rooms',
        }
        for flag, column in columns.items():
            if flag in permissions:
                setattr(self, column, bool(permissions[flag]))

    def permissions(self):
        return {
            'canCreateRooms': bool(self.can_create_rooms),
            'canJoinRooms': bool(self.can_join_rooms),
            'canManageUsers': bool(self.can_manage_users),
            'canDeleteRooms': bool(self.can_delete_rooms),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role,
            'permissions': self.permissions(),
            'lastLogin': self.last_login.isoformat() if self.last_login else None,
        }


class StoreNode(db.Model):
    """One stored value at a slash-separated path such as ``rooms/<id>``."""
    __tablename__ = 'store_node'
    path = db.Column(db.String(512), primary_key=True)
    value = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f'<StoreNode {self.path}>'
