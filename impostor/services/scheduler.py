"""Background work: the roulette collection timer and the inactive-room sweep."""
import uuid
from datetime import timedelta
from typing import Dict

from sqlalchemy.exc import SQLAlchemyError

from impostor import socketio
from impostor.services.game.errors import DomainError
from impostor.services.game.room import utcnow
from impostor.services.repository import RoomBusyError
from impostor.services.usecases import auto_start_collected, sweep_inactive
from impostor.socketio_events import broadcast_game_started

# room id -> token of the collection timer currently allowed to fire
_collection_timers: Dict[str, str] = {}


def _scheduler_enabled(app) -> bool:
    return not app.config.get('TESTING') or app.config.get('ENABLE_SCHEDULER_IN_TESTS')


def schedule_collection_timer(app, room_id: str) -> None:
    """Start a roulette game once the collection time limit runs out.

    A newer collection in the same room supersedes a pending timer. When the
    timer fires with too few words nothing happens and the admin decides.
    """
    if not _scheduler_enabled(app):
        return

    delay = int(app.config.get('ROULETTE_TIME_LIMIT_SEC', 30))
    token = uuid.uuid4().hex
    _collection_timers[room_id] = token
    app.logger.info(f"[timer-set] room={room_id} duration={delay}s")

    def _worker():
        socketio.sleep(delay)
        with app.app_context():
            if _collection_timers.get(room_id) != token:
                app.logger.info(f"[timer-abort] room={room_id} superseded")
                return
            _collection_timers.pop(room_id, None)
            app.logger.info(f"[timer-fire] room={room_id}")
            try:
                room = auto_start_collected(app.extensions['impostor.rooms'], room_id)
            except (DomainError, RoomBusyError, SQLAlchemyError):
                app.logger.exception(f"[timer-fail] room={room_id}")
                return
            if room is not None:
                broadcast_game_started(room, 'roulette')

    socketio.start_background_task(_worker)


def _sweep_cutoffs(app):
    now = utcnow()
    inactive = int(app.config.get('ROOM_INACTIVE_SEC', 300))
    abandoned = int(app.config.get('ROOM_ABANDONED_SEC', 3600))
    return now - timedelta(seconds=inactive), now - timedelta(seconds=abandoned)


def sweep_rooms(app) -> int:
    since, abandoned_before = _sweep_cutoffs(app)
    return sweep_inactive(app.extensions['impostor.rooms'], since, abandoned_before)


def reset_presence(app) -> int:
    """Mark every stored player disconnected; sockets do not survive a restart."""
    with app.app_context():
        touched = app.extensions['impostor.rooms'].mark_all_disconnected()
    app.logger.info(f"[presence-reset] rooms={touched}")
    return touched


def start_room_sweeper(app) -> None:
    interval = int(app.config.get('ROOM_SWEEP_INTERVAL_SEC', 60))
    if interval <= 0 or not _scheduler_enabled(app):
        return

    def _worker():
        while True:
            socketio.sleep(interval)
            with app.app_context():
                try:
                    removed = sweep_rooms(app)
                except (RoomBusyError, SQLAlchemyError):
                    app.logger.exception('[sweep-fail]')
                    continue
                if removed:
                    app.logger.info(f"[sweep] removed={removed}")

    app.logger.info(f"[sweep-set] interval={interval}s")
    socketio.start_background_task(_worker)
