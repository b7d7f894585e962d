from flask import Flask
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
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:3002",
    "http://127.0.0.1:3002",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from courtroom.main import main
    flask_app.register_blueprint(main)

    from courtroom.api.records import records
    flask_app.register_blueprint(records, url_prefix='/api')

    from courtroom.api.play import play
    flask_app.register_blueprint(play, url_prefix='/api/play')

    from courtroom.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from courtroom.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from courtroom.seed import seed_tasks, seed_users
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_users()
            seed_tasks()
            click.echo('Database has been reset and seeded!')

    @click.command('seed-tasks')
    def seed_tasks_command():
        """Creates or updates the default debugging tasks."""
        from courtroom.seed import seed_tasks
        with flask_app.app_context():
            created, updated = seed_tasks()
            click.echo(f'Tasks seeded: {created} created, {updated} updated.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(seed_tasks_command)

    return flask_app
