"""JSON API blueprints and the error mapping they share."""
from flask import current_app, jsonify, request
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from impostor.services.game.errors import (
    AlreadyInRoomError,
    AlreadyVotedError,
    DomainError,
    GameAlreadyStartedError,
    MaxRoomsReachedError,
    NotAdminError,
    PlayerNotFoundError,
    RoomNotFoundError,
)
from impostor.services.repository import RoomBusyError
from impostor.services.words import WordSourceError

_STATUS_BY_ERROR = (
    (RoomNotFoundError, 404),
    (PlayerNotFoundError, 404),
    (NotAdminError, 403),
    (AlreadyInRoomError, 409),
    (AlreadyVotedError, 409),
    (GameAlreadyStartedError, 409),
    (MaxRoomsReachedError, 409),
)

TRANSIENT_FAILURE = {'error': 'TRANSIENT_FAILURE', 'message': 'Temporary failure, please retry'}


class InvalidPayloadError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': 'INVALID_PAYLOAD', 'message': self.message}


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 400


def get_rooms():
    return current_app.extensions['impostor.rooms']


def get_words():
    return current_app.extensions['impostor.words']


def player_identity():
    return current_user.player_id, current_user.display_name


def json_payload(*required):
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidPayloadError('JSON object expected')
    missing = [key for key in required if data.get(key) in (None, '')]
    if missing:
        raise InvalidPayloadError(f"Missing field(s): {', '.join(missing)}")
    return data


def int_field(data, key, default):
    value = data.get(key, default)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lstrip('-').isdecimal():
        return int(value)
    raise InvalidPayloadError(f'{key} must be an integer')


def register_error_handlers(flask_app):
    @flask_app.errorhandler(DomainError)
    def handle_domain_error(error):
        current_app.logger.info(f"[rejected] code={error.code} message={error.message}")
        return jsonify(error.to_dict()), status_for(error)

    @flask_app.errorhandler(InvalidPayloadError)
    def handle_invalid_payload(error):
        return jsonify(error.to_dict()), 400

    @flask_app.errorhandler(RoomBusyError)
    @flask_app.errorhandler(WordSourceError)
    @flask_app.errorhandler(SQLAlchemyError)
    def handle_transient_failure(error):
        current_app.logger.exception(f"[transient-failure] {type(error).__name__}: {error}")
        return jsonify(TRANSIENT_FAILURE), 503
