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

# Seed data for `flask db-reset`: category slug -> (name, {language: words})
SEED_WORDS = {
    'animals': ('Animales', {
        'es': ['perro', 'gato', 'elefante', 'jirafa', 'pingüino', 'delfín', 'caballo', 'tiburón'],
        'en': ['dog', 'cat', 'elephant', 'giraffe', 'penguin', 'dolphin', 'horse', 'shark'],
    }),
    'food': ('Comida', {
        'es': ['paella', 'pizza', 'tortilla', 'croqueta', 'helado', 'sushi', 'gazpacho', 'churros'],
        'en': ['pizza', 'burger', 'pancake', 'sushi', 'ice cream', 'sandwich', 'taco', 'noodles'],
    }),
    'places': ('Lugares', {
        'es': ['playa', 'hospital', 'aeropuerto', 'biblioteca', 'cine', 'estadio', 'montaña', 'museo'],
        'en': ['beach', 'hospital', 'airport', 'library', 'cinema', 'stadium', 'mountain', 'museum'],
    }),
    'objects': ('Objetos', {
        'es': ['paraguas', 'reloj', 'guitarra', 'tijeras', 'espejo', 'bicicleta', 'lámpara', 'llave'],
        'en': ['umbrella', 'watch', 'guitar', 'scissors', 'mirror', 'bicycle', 'lamp', 'key'],
    }),
}


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from impostor.services.repository import InMemoryRoomRepository, SqlRoomRepository
    from impostor.services.words import SqlWordSource

    if flask_app.config.get('ROOM_STORE', 'sql') == 'memory':
        rooms = InMemoryRoomRepository()
    else:
        rooms = SqlRoomRepository(db)
    rooms.save_attempts = int(flask_app.config.get('ROOM_SAVE_ATTEMPTS', 5))
    flask_app.extensions['impostor.rooms'] = rooms
    flask_app.extensions['impostor.words'] = SqlWordSource(db)

    # Import and register blueprints here
    from impostor.main import main
    flask_app.register_blueprint(main)

    from impostor.api import register_error_handlers
    from impostor.api.rooms import rooms_bp
    from impostor.api.games import games
    from impostor.api.words import words
    flask_app.register_blueprint(rooms_bp, url_prefix='/api/rooms')
    flask_app.register_blueprint(games, url_prefix='/api/games')
    flask_app.register_blueprint(words, url_prefix='/api/words')
    register_error_handlers(flask_app)

    # Importing here ensures the handlers bind to the initialized socketio instance
    from impostor.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from impostor.models import Category, User, Word

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'UNAUTHORIZED', 'message': 'Login required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            for name in ['testuser1', 'testuser2', 'testuser3']:
                user = User(username=name, display_name=name)
                user.set_password('password')
                db.session.add(user)

            for slug, (label, by_language) in SEED_WORDS.items():
                category = Category(slug=slug, name=label)
                db.session.add(category)
                for language, entries in by_language.items():
                    for entry in entries:
                        db.session.add(Word(word=entry, language=language, approved=True, category=category))

            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('rooms-sweep')
    def rooms_sweep_command():
        """Deletes rooms nobody has touched or attended recently."""
        from impostor.services.scheduler import sweep_rooms
        with flask_app.app_context():
            removed = sweep_rooms(flask_app)
            print(f'Removed {removed} inactive room(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(rooms_sweep_command)

    return flask_app
