from functools import wraps

from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit, join_room
from sqlalchemy.exc import SQLAlchemyError

from impostor import socketio
from impostor.services.game.errors import DomainError
from impostor.services.game.views import game_ended_view, game_started_view, room_view
from impostor.services.repository import RoomBusyError
from impostor.services.usecases import set_connected
from impostor.services.words import WordSourceError

NAMESPACE = '/ws'


def player_channel(player_id: str) -> str:
    return f"player:{player_id}"


def _rooms():
    return current_app.extensions['impostor.rooms']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


# ---- Broadcast helpers (usable from HTTP views and background tasks) ----

def notify_player(player_id, event, payload=None) -> None:
    socketio.emit(event, payload or {}, to=player_channel(player_id), namespace=NAMESPACE)


def broadcast_event(room, event, payload=None, exclude=None) -> None:
    """Send the same payload to every member of the room."""
    for player in room.players:
        if player.id != exclude:
            notify_player(player.id, event, payload)


def broadcast_room_state(room) -> None:
    """Send each member their own projection of the room."""
    for player in room.players:
        notify_player(player.id, 'room:state', room_view(room, player.id))


def broadcast_game_started(room, mode) -> None:
    for player in room.players:
        notify_player(player.id, 'game:started', game_started_view(room, player.id, mode))
    broadcast_room_state(room)


def broadcast_game_ended(room) -> None:
    broadcast_event(room, 'game:ended', game_ended_view(room))


# ---- Socket handlers ----

def _guarded(handler):
    @wraps(handler)
    def wrapper(*args, **kwargs):
        try:
            return handler(*args, **kwargs)
        except DomainError as exc:
            emit('error', exc.to_dict())
        except (RoomBusyError, WordSourceError, SQLAlchemyError) as exc:
            current_app.logger.exception(f"[socket-failure] sid={_get_sid()} {type(exc).__name__}")
            emit('error', {'error': 'TRANSIENT_FAILURE', 'message': 'Temporary failure, please retry'})
    return wrapper


def handle_connect(auth=None):
    if not current_user.is_authenticated:
        current_app.logger.info(f"[socket-reject] sid={_get_sid()} unauthenticated")
        return False
    player_id = current_user.player_id
    join_room(player_channel(player_id))
    emit('connected', {'player_id': player_id})
    try:
        result = set_connected(_rooms(), player_id, True)
    except (RoomBusyError, SQLAlchemyError):
        current_app.logger.exception(f"[socket-connect] player={player_id} presence update failed")
        return None
    if result.room is not None:
        broadcast_room_state(result.room)
    return None


def handle_disconnect(reason=None):
    if not current_user.is_authenticated:
        return
    player_id = current_user.player_id
    try:
        result = set_connected(_rooms(), player_id, False)
    except (RoomBusyError, SQLAlchemyError):
        current_app.logger.exception(f"[socket-disconnect] player={player_id} presence update failed")
        return
    current_app.logger.info(f"[socket-disconnect] player={player_id} reason={reason}")
    if result.room is not None:
        broadcast_room_state(result.room)


@_guarded
def handle_room_sync(data=None):
    if not current_user.is_authenticated:
        emit('error', {'error': 'UNAUTHORIZED', 'message': 'Login required'})
        return
    player_id = current_user.player_id
    room = _rooms().find_by_player_id(player_id)
    emit('room:state', room_view(room, player_id) if room else {'room': None})


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('room:sync', handle_room_sync, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
