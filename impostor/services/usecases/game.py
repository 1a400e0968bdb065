"""Game setup and round actions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from impostor.services.game.errors import GameAlreadyStartedError, InvalidStateError, RoomNotFoundError
from impostor.services.game.room import COLLECTING_WORDS, FINISHED, LOBBY, Room

from .base import by_id, by_player, require_admin, transact

logger = logging.getLogger(__name__)

CLASSIC = 'classic'
CUSTOM = 'custom'
ROULETTE = 'roulette'
GAME_MODES = (CLASSIC, CUSTOM, ROULETTE)


@dataclass(frozen=True)
class StartGameResult:
    room: Room
    mode: str
    word: Optional[str] = None
    category: Optional[str] = None
    impostor_ids: List[str] = None


@dataclass(frozen=True)
class SubmitWordResult:
    room: Room
    word_count: int
    all_submitted: bool
    can_start: bool


@dataclass(frozen=True)
class ForceStartResult:
    room: Room
    word: str
    impostor_ids: List[str]


@dataclass(frozen=True)
class NextRoundResult:
    room: Room
    current_player_id: Optional[str]


@dataclass(frozen=True)
class GameResult:
    room: Room


def _check_can_setup(room, admin_id):
    require_admin(room, admin_id)
    if room.status != LOBBY:
        raise GameAlreadyStartedError()


def start_game(rooms, words, admin_id, mode=CLASSIC, impostor_count=1, category=None, custom_word=None):
    if mode not in GAME_MODES:
        raise InvalidStateError(f'Unknown game mode: {mode}')
    load = by_player(rooms, admin_id)

    word = None
    category_name = category
    if mode == CLASSIC:
        # Checked up front so a refused start never hits the word store.
        room = load()
        _check_can_setup(room, admin_id)
        picked = words.get_random_word(category=category, language=room.language)
        if picked is None:
            raise InvalidStateError('No words available for this category')
        word, category_name = picked.word, picked.category_name
    elif mode == CUSTOM:
        word = (custom_word or '').strip()
        if not word:
            raise InvalidStateError('Word is required')

    def step(room):
        _check_can_setup(room, admin_id)
        if mode == ROULETTE:
            return room.start_collecting(impostor_count)
        return room.start_game(word, category_name, impostor_count)

    _, room = transact(rooms, load, step)
    logger.info(f"[game-start] room={room.id} mode={mode} impostors={impostor_count} status={room.status}")
    if mode == ROULETTE:
        return StartGameResult(room=room, mode=mode, impostor_ids=[])
    return StartGameResult(
        room=room,
        mode=mode,
        word=room.current_word,
        category=room.category,
        impostor_ids=sorted(room.impostor_ids),
    )


def submit_word(rooms, user_id, word) -> SubmitWordResult:
    _, room = transact(rooms, by_player(rooms, user_id), lambda room: room.submit_word(user_id, word))
    logger.info(f"[word-collected] room={room.id} player={user_id} count={room.word_count}")
    return SubmitWordResult(
        room=room,
        word_count=room.word_count,
        all_submitted=room.all_players_submitted,
        can_start=room.can_start_from_collecting,
    )


def force_start(rooms, admin_id) -> ForceStartResult:
    def step(room):
        require_admin(room, admin_id)
        return room.start_game_from_collecting()

    _, room = transact(rooms, by_player(rooms, admin_id), step)
    logger.info(f"[game-start] room={room.id} mode=roulette forced=True")
    return ForceStartResult(room=room, word=room.current_word, impostor_ids=sorted(room.impostor_ids))


def auto_start_collected(rooms, room_id) -> Optional[Room]:
    """Start a roulette game whose collection time ran out.

    Returns None (and changes nothing) when the room is gone, no longer
    collecting, or short of words; the admin resolves it from there.
    """
    def step(room):
        if room.status != COLLECTING_WORDS or not room.can_start_from_collecting:
            return room
        return room.start_game_from_collecting()

    try:
        before, room = transact(rooms, by_id(rooms, room_id), step)
    except RoomNotFoundError:
        return None
    if room is before:
        logger.info(f"[auto-start-skip] room={room_id} status={room.status} words={room.word_count}")
        return None
    logger.info(f"[game-start] room={room.id} mode=roulette auto=True")
    return room


def cancel_collection(rooms, admin_id) -> GameResult:
    def step(room):
        require_admin(room, admin_id)
        return room.cancel_collection()

    _, room = transact(rooms, by_player(rooms, admin_id), step)
    return GameResult(room=room)


def next_round(rooms, admin_id) -> NextRoundResult:
    def step(room):
        require_admin(room, admin_id)
        return room.next_round()

    _, room = transact(rooms, by_player(rooms, admin_id), step)
    return NextRoundResult(room=room, current_player_id=room.current_player_id)


def play_again(rooms, admin_id) -> GameResult:
    def step(room):
        require_admin(room, admin_id)
        if room.status != FINISHED:
            raise InvalidStateError('Game is not finished')
        return room.reset_to_lobby()

    _, room = transact(rooms, by_player(rooms, admin_id), step)
    logger.info(f"[play-again] room={room.id}")
    return GameResult(room=room)
