import os


def _csv(value):
    return [item.strip() for item in (value or '').split(',') if item.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///impostor.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Fail fast instead of hanging a request on database I/O
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_timeout': int(os.environ.get('DB_POOL_TIMEOUT_SEC', '5')),
    }
    CORS_ORIGINS = _csv(os.environ.get('CORS_ORIGINS')) or [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:5174",
        "http://127.0.0.1:5174",
    ]
    # 'sql' or 'memory'
    ROOM_STORE = os.environ.get('ROOM_STORE', 'sql')
    MAX_ROOMS = int(os.environ.get('MAX_ROOMS', '5'))
    # Read-modify-write retries when two actions hit the same room at once
    ROOM_SAVE_ATTEMPTS = int(os.environ.get('ROOM_SAVE_ATTEMPTS', '5'))
    # Unattended rooms are swept after this many idle seconds. Interval 0 disables.
    ROOM_INACTIVE_SEC = int(os.environ.get('ROOM_INACTIVE_SEC', '300'))
    ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get('ROOM_SWEEP_INTERVAL_SEC', '60'))
    # Rooms idle this long are swept even if members still look connected
    ROOM_ABANDONED_SEC = int(os.environ.get('ROOM_ABANDONED_SEC', '3600'))
    ROULETTE_TIME_LIMIT_SEC = int(os.environ.get('ROULETTE_TIME_LIMIT_SEC', '30'))
    # Usernames allowed to review word suggestions
    ADMIN_USERNAMES = _csv(os.environ.get('ADMIN_USERNAMES'))
    DEFAULT_LANGUAGE = os.environ.get('DEFAULT_LANGUAGE', 'es')
