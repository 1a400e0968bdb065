from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from impostor.api import get_rooms, json_payload, player_identity
from impostor.services.game.errors import RoomNotFoundError
from impostor.services.game.views import room_view
from impostor.services import usecases
from impostor.socketio_events import broadcast_event, broadcast_game_ended, broadcast_room_state, notify_player

rooms_bp = Blueprint('rooms', __name__)


def _state(room):
    return room_view(room, current_user.player_id)


@rooms_bp.route('/create', methods=['POST'])
@login_required
def create_room():
    data = json_payload()
    player_id, display_name = player_identity()
    result = usecases.create_room(
        get_rooms(),
        player_id,
        display_name,
        language=data.get('language') or current_app.config.get('DEFAULT_LANGUAGE', 'es'),
        max_rooms=int(current_app.config.get('MAX_ROOMS', 5)),
    )
    room = result.room
    current_app.logger.info(f"[create_room] room={room.id} code={room.code} admin={player_id}")
    notify_player(player_id, 'room:created', {'code': room.code, 'room': _state(room)})
    return jsonify({'code': room.code, 'room': _state(room)}), 201


@rooms_bp.route('/join', methods=['POST'])
@login_required
def join_room():
    data = json_payload('code')
    player_id, display_name = player_identity()
    result = usecases.join_room(get_rooms(), data['code'], player_id, display_name)
    room = result.room
    if not result.is_reconnect:
        player = room.get_player(player_id)
        broadcast_event(room, 'room:playerJoined', {'player': player.to_dict()}, exclude=player_id)
    broadcast_room_state(room)
    return jsonify({'room': _state(room), 'is_reconnect': result.is_reconnect})


@rooms_bp.route('/leave', methods=['POST'])
@login_required
def leave_room():
    player_id = current_user.player_id
    result = usecases.leave_room(get_rooms(), player_id)
    room = result.room
    if room is not None:
        broadcast_event(room, 'room:playerLeft', {'player_id': player_id})
        if result.new_admin_id:
            broadcast_event(room, 'room:adminChanged', {'admin_id': result.new_admin_id})
        if result.game_ended:
            broadcast_game_ended(room)
        broadcast_room_state(room)
    return jsonify({
        'left': result.room_id is not None,
        'was_deleted': result.was_deleted,
        'new_admin_id': result.new_admin_id,
    })


@rooms_bp.route('/kick', methods=['POST'])
@login_required
def kick_player():
    data = json_payload('player_id')
    target_id = str(data['player_id'])
    result = usecases.kick_player(get_rooms(), current_user.player_id, target_id)
    room = result.room
    notify_player(target_id, 'room:playerKicked', {'player_id': target_id, 'room_id': room.id})
    broadcast_event(room, 'room:playerKicked', {'player_id': target_id})
    if result.game_ended:
        broadcast_game_ended(room)
    broadcast_room_state(room)
    return jsonify({'room': _state(room)})


@rooms_bp.route('/language', methods=['POST'])
@login_required
def change_language():
    data = json_payload('language')
    result = usecases.change_language(get_rooms(), current_user.player_id, data['language'])
    room = result.room
    broadcast_event(room, 'room:languageChanged', {'language': room.language})
    broadcast_room_state(room)
    return jsonify({'room': _state(room)})


@rooms_bp.route('/current', methods=['GET'])
@login_required
def current_room():
    room = get_rooms().find_by_player_id(current_user.player_id)
    if room is None:
        raise RoomNotFoundError()
    return jsonify({'room': _state(room)})
