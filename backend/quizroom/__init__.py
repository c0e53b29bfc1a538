from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Store backend shared by every request and socket handler
    from quizroom.store import build_store
    store = build_store(flask_app, db)
    flask_app.extensions['quizroom_store'] = store

    from quizroom.errors import register_error_handlers
    register_error_handlers(flask_app)

    from quizroom.main import main
    flask_app.register_blueprint(main, url_prefix='/api/auth')

    from quizroom.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from quizroom.api.players import players
    flask_app.register_blueprint(players, url_prefix='/api/players')

    from quizroom.api.contests import contests
    flask_app.register_blueprint(contests, url_prefix='/api/contests')

    from quizroom.api.users import users
    flask_app.register_blueprint(users, url_prefix='/api/users')

    @flask_app.route('/')
    def index():
        return jsonify({'message': 'Welcome to the quizroom server!'})

    from quizroom.socketio_events import register_socketio_handlers
    register_socketio_handlers(flask_app, store, testing=flask_app.config.get('TESTING', False))

    from quizroom.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with an admin account."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            admin = User(username=flask_app.config['ADMIN_USERNAME'], role='admin')
            admin.set_password(flask_app.config['ADMIN_PASSWORD'])
            admin.grant_all()
            db.session.add(admin)
            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('create-user')
    @click.argument('username')
    @click.argument('password')
    @click.option('--admin', is_flag=True, help='Grant every permission.')
    def create_user_command(username, password, admin):
        """Creates a host account."""
        with flask_app.app_context():
            if User.query.filter_by(username=username).first():
                raise click.ClickException(f'User {username} already exists')
            user = User(username=username, role='admin' if admin else 'user')
            user.set_password(password)
            if admin:
                user.grant_all()
            db.session.add(user)
            db.session.commit()
            print(f'User created: {username}')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(create_user_command)

    return flask_app
