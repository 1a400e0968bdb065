"""Read-modify-write of a single room.

Every player action follows the same shape: load the room, apply exactly one
transition, save it. ``save`` refuses a room that someone else saved first,
in which case the whole cycle starts over from a fresh read, so an action is
always applied to the latest state and never partially.
"""
import logging

from impostor.services.game.errors import NotAdminError, RoomNotFoundError
from impostor.services.repository import ConcurrentModificationError, RoomBusyError

logger = logging.getLogger(__name__)

DEFAULT_SAVE_ATTEMPTS = 5


def transact(rooms, load, step):
    """Run ``step`` on the room returned by ``load`` and persist the outcome.

    ``step`` returns the new room, the same room (nothing to save) or None
    (delete the room). Returns ``(room_read, room_stored)``; ``room_stored``
    is None when the room was deleted.
    """
    attempts = getattr(rooms, 'save_attempts', DEFAULT_SAVE_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        current = load()
        updated = step(current)
        try:
            if updated is None:
                rooms.delete(current.id, version=current.version)
                return current, None
            if updated is current:
                return current, current
            return current, rooms.save(updated)
        except ConcurrentModificationError as exc:
            logger.info(f"[save-conflict] room={exc.room_id} attempt={attempt}")
    logger.warning(f"[save-giveup] attempts={attempts}")
    raise RoomBusyError('Room is busy, please retry')


def by_player(rooms, player_id):
    def load():
        room = rooms.find_by_player_id(player_id)
        if room is None:
            raise RoomNotFoundError()
        return room
    return load


def by_code(rooms, code):
    def load():
        room = rooms.find_by_code(code)
        if room is None:
            raise RoomNotFoundError()
        return room
    return load


def by_id(rooms, room_id):
    def load():
        room = rooms.find_by_id(room_id)
        if room is None:
            raise RoomNotFoundError()
        return room
    return load


def require_admin(room, player_id):
    if not room.is_admin(player_id):
        raise NotAdminError()
