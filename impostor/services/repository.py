"""Room storage.

``save`` is a compare-and-swap on ``Room.version``: it only succeeds when
the stored version is the one the room was read at, so two writers racing
on the same room can never silently overwrite each other. Different rooms
never contend.
"""
from __future__ import annotations

import json
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from impostor.models import RoomPlayerRecord, RoomRecord
from impostor.services.game.player import Player
from impostor.services.game.room import FINISHED, Room


class ConcurrentModificationError(Exception):
    """The room changed (or was created/deleted) since it was read."""

    def __init__(self, room_id):
        super().__init__(f'Room {room_id} was modified concurrently')
        self.room_id = room_id


class RoomBusyError(Exception):
    """Gave up after repeated concurrent modifications of one room."""

    code = 'ROOM_BUSY'


class RoomRepository:
    save_attempts = 5

    def find_by_id(self, room_id: str) -> Optional[Room]:
        raise NotImplementedError

    def find_by_code(self, code: str) -> Optional[Room]:
        raise NotImplementedError

    def find_by_player_id(self, player_id: str) -> Optional[Room]:
        raise NotImplementedError

    def save(self, room: Room) -> Room:
        """Persist ``room`` if nobody saved it since it was read; return the stored value."""
        raise NotImplementedError

    def delete(self, room_id: str, version: Optional[int] = None) -> None:
        raise NotImplementedError

    def count_active(self) -> int:
        raise NotImplementedError

    def is_code_taken(self, code: str) -> bool:
        raise NotImplementedError

    def find_inactive(self, since: datetime) -> List[Room]:
        raise NotImplementedError

    def mark_all_disconnected(self) -> int:
        """Clear every stored presence flag; returns the number of rooms touched.

        Only safe while no sockets are attached, i.e. at process start.
        """
        raise NotImplementedError


class InMemoryRoomRepository(RoomRepository):
    def __init__(self):
        self._lock = threading.RLock()
        self._rooms: Dict[str, Room] = {}
        self._code_to_id: Dict[str, str] = {}
        self._player_to_room: Dict[str, str] = {}

    def find_by_id(self, room_id):
        with self._lock:
            return self._rooms.get(room_id)

    def find_by_code(self, code):
        with self._lock:
            room_id = self._code_to_id.get((code or '').upper())
            return self._rooms.get(room_id) if room_id else None

    def find_by_player_id(self, player_id):
        with self._lock:
            room_id = self._player_to_room.get(player_id)
            return self._rooms.get(room_id) if room_id else None

    def save(self, room):
        with self._lock:
            current = self._rooms.get(room.id)
            stored_version = current.version if current else 0
            if stored_version != room.version:
                raise ConcurrentModificationError(room.id)
            owner = self._code_to_id.get(room.code.upper())
            if owner and owner != room.id:
                raise ConcurrentModificationError(room.id)
            for player_id in room.player_ids:
                other = self._player_to_room.get(player_id)
                if other and other != room.id:
                    raise ConcurrentModificationError(room.id)

            saved = replace(room, version=room.version + 1)
            self._rooms[room.id] = saved
            self._code_to_id[room.code.upper()] = room.id
            for player_id, room_id in list(self._player_to_room.items()):
                if room_id == room.id and not saved.has_player(player_id):
                    del self._player_to_room[player_id]
            for player_id in saved.player_ids:
                self._player_to_room[player_id] = room.id
            return saved

    def delete(self, room_id, version=None):
        with self._lock:
            current = self._rooms.get(room_id)
            if current is None:
                if version is not None:
                    raise ConcurrentModificationError(room_id)
                return
            if version is not None and current.version != version:
                raise ConcurrentModificationError(room_id)
            self._code_to_id.pop(current.code.upper(), None)
            for player_id, owner in list(self._player_to_room.items()):
                if owner == room_id:
                    del self._player_to_room[player_id]
            del self._rooms[room_id]

    def count_active(self):
        with self._lock:
            return sum(1 for room in self._rooms.values() if room.status != FINISHED)

    def is_code_taken(self, code):
        with self._lock:
            return (code or '').upper() in self._code_to_id

    def find_inactive(self, since):
        with self._lock:
            return [room for room in self._rooms.values() if room.last_activity < since]

    def mark_all_disconnected(self):
        touched = 0
        with self._lock:
            for room_id, room in list(self._rooms.items()):
                if not room.connected_players:
                    continue
                players = tuple(p.disconnect() for p in room.players)
                self._rooms[room_id] = replace(room, players=players, version=room.version + 1)
                touched += 1
        return touched


def _to_db_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _record_values(room: Room) -> dict:
    return {
        'code': room.code.upper(),
        'admin_id': room.admin_id,
        'status': room.status,
        'language': room.language,
        'current_word': room.current_word,
        'impostor_ids': json.dumps(sorted(room.impostor_ids)),
        'turn_order': json.dumps(list(room.turn_order)) if room.turn_order is not None else None,
        'current_round': room.current_round,
        'category': room.category,
        'win_condition': room.win_condition,
        'submitted_words': json.dumps(room.submitted_words),
        'requested_impostors': room.requested_impostors,
        'created_at': _to_db_time(room.created_at),
        'last_activity': _to_db_time(room.last_activity),
    }


def _room_from_record(record) -> Room:
    players = tuple(
        Player(
            id=p.user_id,
            display_name=p.display_name,
            is_connected=p.is_connected,
            is_eliminated=p.is_eliminated,
            has_voted=p.has_voted,
            voted_for=p.voted_for,
        )
        for p in record.players
    )
    return Room(
        id=record.id,
        code=record.code,
        admin_id=record.admin_id,
        status=record.status,
        language=record.language,
        players=players,
        current_word=record.current_word,
        impostor_ids=frozenset(json.loads(record.impostor_ids or '[]')),
        turn_order=tuple(json.loads(record.turn_order)) if record.turn_order else None,
        current_round=record.current_round,
        category=record.category,
        win_condition=record.win_condition,
        submitted_words=json.loads(record.submitted_words or '{}'),
        requested_impostors=record.requested_impostors,
        created_at=_from_db_time(record.created_at),
        last_activity=_from_db_time(record.last_activity),
        version=record.version,
    )


class SqlRoomRepository(RoomRepository):
    """Rooms in the application database through the Flask-SQLAlchemy session."""

    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    def _query(self):
        return (
            select(RoomRecord)
            .options(selectinload(RoomRecord.players))
            .execution_options(populate_existing=True)
        )

    def _first(self, stmt) -> Optional[Room]:
        record = self.session.execute(stmt).scalars().first()
        return _room_from_record(record) if record else None

    def find_by_id(self, room_id):
        return self._first(self._query().where(RoomRecord.id == room_id))

    def find_by_code(self, code):
        return self._first(self._query().where(RoomRecord.code == (code or '').upper()))

    def find_by_player_id(self, player_id):
        stmt = self._query().join(RoomPlayerRecord, RoomPlayerRecord.room_id == RoomRecord.id).where(
            RoomPlayerRecord.user_id == player_id
        )
        return self._first(stmt)

    def save(self, room):
        # Core statements only: player rows are replaced wholesale and must not
        # meet stale ORM instances left in the session's identity map.
        session = self.session
        values = _record_values(room)
        rows = [
            {
                'room_id': room.id,
                'user_id': player.id,
                'position': position,
                'display_name': player.display_name,
                'is_connected': player.is_connected,
                'is_eliminated': player.is_eliminated,
                'has_voted': player.has_voted,
                'voted_for': player.voted_for,
            }
            for position, player in enumerate(room.players)
        ]
        try:
            if room.version == 0:
                session.execute(insert(RoomRecord).values(id=room.id, version=1, **values))
            else:
                result = session.execute(
                    update(RoomRecord)
                    .where(RoomRecord.id == room.id, RoomRecord.version == room.version)
                    .values(version=room.version + 1, **values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    session.rollback()
                    raise ConcurrentModificationError(room.id)
                session.execute(
                    delete(RoomPlayerRecord)
                    .where(RoomPlayerRecord.room_id == room.id)
                    .execution_options(synchronize_session=False)
                )
            if rows:
                session.execute(insert(RoomPlayerRecord), rows)
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConcurrentModificationError(room.id) from exc
        except SQLAlchemyError:
            session.rollback()
            raise
        return replace(room, version=room.version + 1)

    def delete(self, room_id, version=None):
        session = self.session
        stmt = delete(RoomRecord).where(RoomRecord.id == room_id)
        if version is not None:
            stmt = stmt.where(RoomRecord.version == version)
        try:
            session.execute(
                delete(RoomPlayerRecord)
                .where(RoomPlayerRecord.room_id == room_id)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt.execution_options(synchronize_session=False))
            if version is not None and result.rowcount != 1:
                session.rollback()
                raise ConcurrentModificationError(room_id)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise

    def count_active(self):
        stmt = select(func.count()).select_from(RoomRecord).where(RoomRecord.status != FINISHED)
        return self.session.execute(stmt).scalar_one()

    def is_code_taken(self, code):
        stmt = select(RoomRecord.id).where(RoomRecord.code == (code or '').upper())
        return self.session.execute(stmt).first() is not None

    def find_inactive(self, since):
        stmt = self._query().where(RoomRecord.last_activity < _to_db_time(since))
        return [_room_from_record(r) for r in self.session.execute(stmt).scalars().all()]

    def mark_all_disconnected(self):
        session = self.session
        attended = select(RoomPlayerRecord.room_id).where(RoomPlayerRecord.is_connected.is_(True)).distinct()
        try:
            result = session.execute(
                update(RoomRecord)
                .where(RoomRecord.id.in_(attended))
                .values(version=RoomRecord.version + 1)
                .execution_options(synchronize_session=False)
            )
            touched = result.rowcount
            session.execute(
                update(RoomPlayerRecord)
                .where(RoomPlayerRecord.is_connected.is_(True))
                .values(is_connected=False)
                .execution_options(synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        return touched
