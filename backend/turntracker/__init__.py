from flask import Flask, jsonify, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()


def get_turn_service():
    """Return the TurnService bound to the current app."""
    return current_app.extensions['turntracker']


def _build_store(flask_app):
    from turntracker.storage import MemoryStore, SqlAlchemyStore

    kind = flask_app.config.get('TURNTRACKER_STORE', 'sql')
    if kind == 'memory':
        return MemoryStore()
    if kind == 'sql':
        return SqlAlchemyStore(db)
    raise ValueError(f"Unknown TURNTRACKER_STORE: {kind!r}")


def _build_push_sender(flask_app):
    from turntracker.services.notifications.push import NullPushSender, WebPushSender

    cfg = flask_app.config
    if not cfg.get('PUSH_ENABLED'):
        return NullPushSender()
    return WebPushSender(
        vapid_private_key=cfg['VAPID_PRIVATE_KEY'],
        vapid_subject=cfg['VAPID_SUBJECT'],
        ttl=int(cfg.get('PUSH_TTL_SEC', 86400)),
    )


def create_app(config_class=Config, store=None, push_sender=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=flask_app.config.get('CORS_ORIGINS', []))

    from turntracker.main import main
    flask_app.register_blueprint(main)

    # Mount turn tracker routes under /api to match the web client
    from turntracker.api.games import games
    from turntracker.api.push import push
    flask_app.register_blueprint(games, url_prefix='/api')
    flask_app.register_blueprint(push, url_prefix='/api')

    from turntracker.services.notifications.push import NOTIFICATION_TITLE, Notifier
    from turntracker.services.sessions.turns import TurnService

    if store is None:
        store = _build_store(flask_app)
    if push_sender is None:
        push_sender = _build_push_sender(flask_app)
    flask_app.extensions['turntracker'] = TurnService(store, Notifier(store, push_sender))

    from turntracker.services.sessions.errors import TurnTrackerError

    @flask_app.errorhandler(TurnTrackerError)
    def handle_turn_tracker_error(error):
        return jsonify({'message': str(error)}), error.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({'message': error.description}), error.code

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error):
        flask_app.logger.exception(f"[error] unhandled {type(error).__name__}")
        db.session.rollback()
        return jsonify({'message': 'Internal server error'}), 500

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        import turntracker.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('send-test-push')
    @click.argument('steam_id')
    def send_test_push_command(steam_id):
        """Sends a test notification to a player's stored subscription."""
        with flask_app.app_context():
            service = flask_app.extensions['turntracker']
            if service.store.get_subscription(steam_id) is None:
                print(f'No subscription stored for {steam_id}')
                return
            service.notifier.notify(
                steam_id,
                title=NOTIFICATION_TITLE,
                body='This is a test notification',
                tag='test',
                game_id=None,
            )
            print(f'Test notification dispatched to {steam_id}')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(send_test_push_command)

    return flask_app
