"""Room membership actions: create, join, leave, kick, language, rename, presence."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from impostor.services.game.errors import (
    AlreadyInRoomError,
    InvalidStateError,
    MaxRoomsReachedError,
    PlayerNotFoundError,
    RoomNotFoundError,
)
from impostor.services.game.room import DEFAULT_LANGUAGE, FINISHED, Room, generate_code
from impostor.services.repository import ConcurrentModificationError

from .base import by_code, by_player, require_admin, transact

logger = logging.getLogger(__name__)

MAX_ROOMS = 5
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 20


@dataclass(frozen=True)
class RoomResult:
    room: Optional[Room]


@dataclass(frozen=True)
class JoinRoomResult:
    room: Room
    is_reconnect: bool


@dataclass(frozen=True)
class LeaveRoomResult:
    room: Optional[Room]
    room_id: Optional[str] = None
    new_admin_id: Optional[str] = None
    was_deleted: bool = False
    game_ended: bool = False


@dataclass(frozen=True)
class KickPlayerResult:
    room: Room
    game_ended: bool = False


def _settle(room: Room) -> Room:
    """End a running game whose outcome was decided by a departure."""
    condition = room.check_win_condition()
    if condition:
        return room.finish_game(condition)
    return room


def _ended(before: Room, after: Optional[Room]) -> bool:
    return after is not None and after.status == FINISHED and before.status != FINISHED


def create_room(rooms, user_id, display_name, language=DEFAULT_LANGUAGE, max_rooms=MAX_ROOMS) -> RoomResult:
    def load():
        if rooms.find_by_player_id(user_id) is not None:
            raise AlreadyInRoomError()
        if rooms.count_active() >= max_rooms:
            raise MaxRoomsReachedError()
        return None

    def step(_):
        code = generate_code()
        while rooms.is_code_taken(code):
            code = generate_code()
        return Room.create(str(uuid.uuid4()), code, user_id, display_name, language or DEFAULT_LANGUAGE)

    _, room = transact(rooms, load, step)
    logger.info(f"[room-created] room={room.id} code={room.code} admin={user_id}")
    return RoomResult(room=room)


def join_room(rooms, code, user_id, display_name) -> JoinRoomResult:
    code = (code or '').strip().upper()
    find_room = by_code(rooms, code)

    def load():
        existing = rooms.find_by_player_id(user_id)
        if existing is not None and existing.code.upper() != code:
            raise AlreadyInRoomError()
        return find_room()

    def step(room):
        if room.has_player(user_id):
            # Members may come back at any point of the game.
            return room.connect_player(user_id)
        return room.add_player(user_id, display_name)

    before, room = transact(rooms, load, step)
    is_reconnect = before.has_player(user_id)
    logger.info(f"[room-joined] room={room.id} player={user_id} reconnect={is_reconnect}")
    return JoinRoomResult(room=room, is_reconnect=is_reconnect)


def leave_room(rooms, user_id) -> LeaveRoomResult:
    def step(room):
        updated = room.remove_player(user_id)
        if updated.player_count == 0:
            return None
        return _settle(updated)

    try:
        before, room = transact(rooms, by_player(rooms, user_id), step)
    except RoomNotFoundError:
        return LeaveRoomResult(room=None)

    new_admin_id = room.admin_id if room is not None and before.is_admin(user_id) else None
    logger.info(f"[room-left] room={before.id} player={user_id} deleted={room is None}")
    return LeaveRoomResult(
        room=room,
        room_id=before.id,
        new_admin_id=new_admin_id,
        was_deleted=room is None,
        game_ended=_ended(before, room),
    )


def kick_player(rooms, admin_id, target_id) -> KickPlayerResult:
    def step(room):
        require_admin(room, admin_id)
        if target_id == admin_id or not room.has_player(target_id):
            raise PlayerNotFoundError()
        return _settle(room.remove_player(target_id))

    before, room = transact(rooms, by_player(rooms, admin_id), step)
    logger.info(f"[room-kick] room={room.id} target={target_id}")
    return KickPlayerResult(room=room, game_ended=_ended(before, room))


def change_language(rooms, admin_id, language) -> RoomResult:
    def step(room):
        require_admin(room, admin_id)
        return room.change_language(language)

    _, room = transact(rooms, by_player(rooms, admin_id), step)
    return RoomResult(room=room)


def rename_player(rooms, user_id, display_name) -> RoomResult:
    name = (display_name or '').strip()
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        raise InvalidStateError(f'Display name must be {MIN_NAME_LENGTH}-{MAX_NAME_LENGTH} characters')
    try:
        _, room = transact(
            rooms, by_player(rooms, user_id), lambda room: room.update_player_display_name(user_id, name)
        )
    except RoomNotFoundError:
        return RoomResult(room=None)
    return RoomResult(room=room)


def set_connected(rooms, user_id, connected) -> RoomResult:
    def step(room):
        player = room.get_player(user_id)
        if player is not None and player.is_connected == connected:
            return room
        return room.connect_player(user_id) if connected else room.disconnect_player(user_id)

    try:
        _, room = transact(rooms, by_player(rooms, user_id), step)
    except RoomNotFoundError:
        return RoomResult(room=None)
    return RoomResult(room=room)


def sweep_inactive(rooms, since: datetime, abandoned_before: Optional[datetime] = None) -> int:
    """Delete rooms idle since ``since`` that nobody is connected to.

    Rooms idle since ``abandoned_before`` go regardless of presence flags;
    members who joined over HTTP and never opened a socket stay flagged as
    connected.
    """
    removed = 0
    for room in rooms.find_inactive(since):
        abandoned = abandoned_before is not None and room.last_activity < abandoned_before
        if room.connected_players and not abandoned:
            continue
        try:
            rooms.delete(room.id, version=room.version)
        except ConcurrentModificationError:
            logger.info(f"[sweep-skip] room={room.id} changed while sweeping")
            continue
        removed += 1
    if removed:
        logger.info(f"[sweep] removed={removed}")
    return removed
