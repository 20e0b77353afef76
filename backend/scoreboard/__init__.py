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
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
    origins = list(flask_app.config.get('CORS_ORIGINS') or [])

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=origins)

    # Socket.IO shares the HTTP origins so browser clients can open /ws
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    _register_error_handlers(flask_app)

    from scoreboard.main import main
    flask_app.register_blueprint(main)

    from scoreboard.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from scoreboard.api.analytics import analytics
    flask_app.register_blueprint(analytics, url_prefix='/api/analytics')

    from scoreboard.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from scoreboard.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    flask_app.cli.add_command(_db_reset_command(flask_app))
    return flask_app


def _register_error_handlers(flask_app):
    from scoreboard.errors import ScoreboardError

    @flask_app.errorhandler(ScoreboardError)
    def handle_scoreboard_error(exc):
        flask_app.logger.info(f"[error] status={exc.status_code} message={exc.message}")
        return jsonify({'error': exc.message}), exc.status_code


def _db_reset_command(flask_app):
    @click.command('db-reset')
    @click.option('--with-game/--no-game', default=True, help='Also seed a sample game hosted by testuser1.')
    def db_reset_command(with_game):
        """Drops, recreates, and seeds the database."""
        from scoreboard.models import User
        from scoreboard.services.games import lifecycle
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            seeded = []
            for name in ('testuser1', 'testuser2', 'testuser3'):
                user = User(username=name, email=f'{name}@example.com')
                user.set_password('password')
                db.session.add(user)
                seeded.append(user)
            db.session.commit()

            if with_game:
                game = lifecycle.create_game(seeded[0], {
                    'game_name': 'Sample Game',
                    'player_ids': [u.id for u in seeded[1:]],
                })
                click.echo(f'Sample game join code: {game.join_code(flask_app.config["JOIN_CODE_LENGTH"])}')
            click.echo('Database has been reset and seeded!')

    return db_reset_command
