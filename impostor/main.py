from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required, login_user, logout_user

from impostor import db
from impostor.api import InvalidPayloadError, get_rooms, json_payload
from impostor.models import User
from impostor.services.usecases import rename_player
from impostor.services.usecases.rooms import MAX_NAME_LENGTH, MIN_NAME_LENGTH
from impostor.socketio_events import broadcast_room_state

main = Blueprint('main', __name__)


def _clean_name(value):
    name = (value or '').strip()
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        raise InvalidPayloadError(f'display_name must be {MIN_NAME_LENGTH}-{MAX_NAME_LENGTH} characters')
    return name


@main.route('/login', methods=['POST'])
def login():
    data = json_payload('username', 'password')
    user = User.query.filter_by(username=data['username']).first()
    if user and user.check_password(data['password']):
        login_user(user)
        return jsonify({"success": True, "user": user.to_dict()})
    return jsonify({"success": False, "error": "INVALID_CREDENTIALS", "message": "Invalid credentials"}), 401


@main.route('/register', methods=['POST'])
def register():
    data = json_payload('username', 'password')
    username = str(data['username']).strip()
    if User.query.filter_by(username=username).first():
        return jsonify({"success": False, "error": "USERNAME_TAKEN", "message": "Username already exists"}), 400

    new_user = User(username=username, display_name=_clean_name(data.get('display_name') or username))
    new_user.set_password(data['password'])
    db.session.add(new_user)
    db.session.commit()
    login_user(new_user)
    current_app.logger.info(f"[register] user={new_user.id}")
    return jsonify({"success": True, "user": new_user.to_dict()}), 201


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@main.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({"success": True, "user": current_user.to_dict()})


@main.route('/me', methods=['PATCH'])
@login_required
def update_me():
    data = json_payload('display_name')
    name = _clean_name(data['display_name'])
    result = rename_player(get_rooms(), current_user.player_id, name)
    current_user.display_name = name
    db.session.commit()
    if result.room is not None:
        broadcast_room_state(result.room)
    return jsonify({"success": True, "user": current_user.to_dict()})
