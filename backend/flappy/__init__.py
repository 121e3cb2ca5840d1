from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('ALLOWED_ORIGINS') or []
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # The handshake carries the session cookie, so current_user works in handlers
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    if not flask_app.config.get('GOOGLE_CLIENT_ID'):
        flask_app.logger.warning("GOOGLE_CLIENT_ID is not set; Google sign-in redirect will fail")

    # Per-app session state: presence, pending games, active matches
    from flappy.hub import SessionHub, socketio_notify
    flask_app.extensions['flappy'] = SessionHub(
        socketio_notify(socketio, namespace),
        ttl_sec=flask_app.config.get('PENDING_GAME_TTL_SEC', 120),
        logger=flask_app.logger,
    )

    from flappy.main import main
    flask_app.register_blueprint(main)

    from flappy.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    from flappy.models import User

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            for i, name in enumerate(['testuser1', 'testuser2', 'testuser3'], start=1):
                db.session.add(User(google_id=f'seed-{i}', display_name=name, custom_username=name))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    from flappy.services.sweeper import start_pending_game_sweeper
    start_pending_game_sweeper(flask_app)

    return flask_app
