import os
import sys
import pytest

# Ensure the project root (containing the `impostor` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from impostor import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    ROOM_STORE = 'sql'
    MAX_ROOMS = 5
    ROOM_SAVE_ATTEMPTS = 5
    ROULETTE_TIME_LIMIT_SEC = 30
    ADMIN_USERNAMES = ['moderator']
    DEFAULT_LANGUAGE = 'es'


@pytest.fixture()
def flask_app():
    # No context stays pushed during the test; every request and socket
    # event gets its own, and with it its own Flask-Login user.
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import impostor.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """An app context for tests that talk to the database directly."""
    with flask_app.app_context():
        yield flask_app


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def seeded_words(flask_app):
    from impostor.models import Category, Word
    with flask_app.app_context():
        animals = Category(slug='animals', name='Animales')
        food = Category(slug='food', name='Comida')
        db.session.add_all([animals, food])
        for word in ['perro', 'gato', 'caballo']:
            db.session.add(Word(word=word, language='es', approved=True, category=animals))
        db.session.add(Word(word='dog', language='en', approved=True, category=animals))
        db.session.add(Word(word='paella', language='es', approved=True, category=food))
        db.session.add(Word(word='pending', language='es', approved=False, category=food))
        db.session.commit()
        return {'animals': animals.id, 'food': food.id}


@pytest.fixture()
def make_player(flask_app):
    """Register a user on a fresh test client; returns (client, player_id)."""
    def _make(username, display_name=None):
        http = flask_app.test_client()
        res = http.post('/register', json={
            'username': username,
            'password': 'password',
            'display_name': display_name or username.capitalize(),
        })
        assert res.status_code == 201
        return http, res.get_json()['user']['id']
    return _make


@pytest.fixture()
def socket_for(flask_app):
    """Connect a Socket.IO test client sharing the given HTTP client's session."""
    opened = []

    def _connect(http_client):
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=http_client,
            namespace='/ws'
        )
        opened.append(test_client)
        return test_client

    yield _connect
    for test_client in opened:
        if test_client.is_connected('/ws'):
            test_client.disconnect(namespace='/ws')
