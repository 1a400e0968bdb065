"""Room aggregate: the authoritative state machine of one game room.

A room moves through ``lobby -> [collecting_words] -> playing <-> voting ->
finished`` and back to ``lobby`` on play-again. Every transition validates
its preconditions, raises a :class:`DomainError` subclass on violation and
returns a *new* Room; nothing here performs I/O.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple

from .errors import (
    AlreadyVotedError,
    GameAlreadyStartedError,
    InvalidStateError,
    InvalidVoteTargetError,
    NotEnoughPlayersError,
    PlayerNotFoundError,
)
from .player import Player

MIN_PLAYERS = 3
MAX_IMPOSTORS = 6
MIN_PLAYERS_PER_IMPOSTOR = 2

CODE_CHARS = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'
CODE_LENGTH = 4

SUPPORTED_LANGUAGES = ('es', 'en', 'ca', 'eu', 'gl')
DEFAULT_LANGUAGE = 'es'

LOBBY = 'lobby'
COLLECTING_WORDS = 'collecting_words'
PLAYING = 'playing'
VOTING = 'voting'
FINISHED = 'finished'

IMPOSTOR_CAUGHT = 'impostor_caught'
IMPOSTOR_SURVIVED = 'impostor_survived'
WIN_CONDITIONS = (IMPOSTOR_CAUGHT, IMPOSTOR_SURVIVED)

_system_random = random.SystemRandom()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def shuffled(items, rng=None) -> list:
    """Return a uniformly random permutation of ``items`` (Fisher-Yates)."""
    rng = rng or _system_random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def generate_code(rng=None) -> str:
    rng = rng or _system_random
    return ''.join(rng.choice(CODE_CHARS) for _ in range(CODE_LENGTH))


def min_players_for_impostors(impostor_count: int) -> int:
    return impostor_count * MIN_PLAYERS_PER_IMPOSTOR


def is_impostor_count_valid(impostor_count: int, player_count: int) -> bool:
    if impostor_count < 1 or impostor_count > MAX_IMPOSTORS:
        return False
    return player_count >= min_players_for_impostors(impostor_count)


def recommended_impostors(player_count: int) -> Tuple[int, int]:
    """(min, max) impostor counts that keep a game balanced."""
    if player_count < 6:
        return 1, 1
    if player_count < 10:
        return 1, 2
    if player_count < 16:
        return 2, 3
    return 3, 4


@dataclass(frozen=True)
class VoteTally:
    """Votes of the current voting phase, counted over active voters only."""

    counts: Dict[str, int]
    active_count: int

    @property
    def threshold(self) -> int:
        return math.ceil(2 * self.active_count / 3)

    @property
    def two_thirds_reached(self) -> bool:
        # UI hint only; elimination is always an explicit admin decision.
        return any(c >= self.threshold for c in self.counts.values())

    @property
    def results(self) -> List[Tuple[str, int]]:
        return sorted(self.counts.items(), key=lambda item: -item[1])

    @property
    def top_votes(self) -> int:
        return max(self.counts.values(), default=0)

    @property
    def is_tie(self) -> bool:
        top = self.top_votes
        if top == 0:
            return True
        return sum(1 for c in self.counts.values() if c == top) > 1

    @property
    def leader_id(self) -> Optional[str]:
        if self.is_tie:
            return None
        return self.results[0][0]


@dataclass(frozen=True)
class Room:
    id: str
    code: str
    admin_id: str
    status: str = LOBBY
    language: str = DEFAULT_LANGUAGE
    players: Tuple[Player, ...] = ()
    current_word: Optional[str] = None
    impostor_ids: FrozenSet[str] = frozenset()
    turn_order: Optional[Tuple[str, ...]] = None
    current_round: int = 0
    category: Optional[str] = None
    win_condition: Optional[str] = None
    submitted_words: Dict[str, str] = field(default_factory=dict)
    requested_impostors: int = 1
    created_at: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)
    # Persisted version this value was read at; the repository compares it on save.
    version: int = 0

    @classmethod
    def create(cls, room_id: str, code: str, admin_id: str, admin_name: str,
               language: str = DEFAULT_LANGUAGE) -> Room:
        if language not in SUPPORTED_LANGUAGES:
            raise InvalidStateError(f'Unsupported language: {language}')
        now = utcnow()
        return cls(
            id=room_id,
            code=code,
            admin_id=admin_id,
            language=language,
            players=(Player(id=admin_id, display_name=admin_name),),
            created_at=now,
            last_activity=now,
        )

    # -- queries -----------------------------------------------------------

    @property
    def player_ids(self) -> List[str]:
        return [p.id for p in self.players]

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def active_players(self) -> List[Player]:
        return [p for p in self.players if not p.is_eliminated]

    @property
    def connected_players(self) -> List[Player]:
        return [p for p in self.players if p.is_connected]

    @property
    def impostor_count(self) -> int:
        return len(self.impostor_ids) if self.impostor_ids else self.requested_impostors

    @property
    def word_count(self) -> int:
        return len(self.submitted_words)

    @property
    def min_words_required(self) -> int:
        return math.ceil(self.player_count / 2)

    @property
    def can_start_from_collecting(self) -> bool:
        return self.status == COLLECTING_WORDS and self.word_count >= self.min_words_required

    @property
    def all_players_submitted(self) -> bool:
        return all(pid in self.submitted_words for pid in self.player_ids)

    @property
    def all_voted(self) -> bool:
        return not any(p.can_vote for p in self.players)

    @property
    def votes(self) -> Dict[str, str]:
        return {p.id: p.voted_for for p in self.active_players if p.has_voted and p.voted_for}

    @property
    def current_player_id(self) -> Optional[str]:
        """Player who opens the current round's clues."""
        if not self.turn_order or self.current_round < 1:
            return None
        size = len(self.turn_order)
        start = (self.current_round - 1) % size
        for offset in range(size):
            pid = self.turn_order[(start + offset) % size]
            player = self.get_player(pid)
            if player is not None and not player.is_eliminated:
                return pid
        return None

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def has_player(self, player_id: str) -> bool:
        return self.get_player(player_id) is not None

    def is_admin(self, player_id: str) -> bool:
        return self.admin_id == player_id

    def is_impostor(self, player_id: str) -> bool:
        return player_id in self.impostor_ids

    def has_submitted_word(self, player_id: str) -> bool:
        return player_id in self.submitted_words

    # -- helpers -----------------------------------------------------------

    def _with(self, **changes) -> Room:
        return replace(self, last_activity=utcnow(), **changes)

    def _require_player(self, player_id: str) -> Player:
        player = self.get_player(player_id)
        if player is None:
            raise PlayerNotFoundError()
        return player

    def _require_status(self, status: str, message: str) -> None:
        if self.status != status:
            raise InvalidStateError(message)

    def _with_player(self, updated: Player) -> Room:
        players = tuple(updated if p.id == updated.id else p for p in self.players)
        return self._with(players=players)

    def _reset_votes(self) -> Tuple[Player, ...]:
        return tuple(p.reset_vote() for p in self.players)

    def _check_can_start(self, impostor_count: int) -> None:
        if self.player_count < MIN_PLAYERS:
            raise NotEnoughPlayersError(MIN_PLAYERS)
        if not is_impostor_count_valid(impostor_count, self.player_count):
            raise InvalidStateError(
                f'{impostor_count} impostors need between 1 and {MAX_IMPOSTORS} impostors '
                f'and at least {min_players_for_impostors(impostor_count)} players'
            )

    def _deal(self, word: str, category: Optional[str], impostor_count: int) -> Room:
        ids = self.player_ids
        impostors = frozenset(shuffled(ids)[:impostor_count])
        return self._with(
            status=PLAYING,
            players=tuple(p.reset_for_new_game() for p in self.players),
            current_word=word,
            category=category,
            impostor_ids=impostors,
            turn_order=tuple(shuffled(ids)),
            current_round=1,
            win_condition=None,
            submitted_words={},
            requested_impostors=impostor_count,
        )

    # -- membership --------------------------------------------------------

    def add_player(self, player_id: str, display_name: str) -> Room:
        if self.status != LOBBY:
            raise GameAlreadyStartedError()
        existing = self.get_player(player_id)
        if existing is not None:
            return self._with_player(existing.connect())
        return self._with(players=self.players + (Player(id=player_id, display_name=display_name),))

    def remove_player(self, player_id: str) -> Room:
        """Drop a player from every collection; admin passes to the next in join order.

        The caller deletes the room once it is empty.
        """
        self._require_player(player_id)
        players = []
        for p in self.players:
            if p.id == player_id:
                continue
            if p.voted_for == player_id:
                p = p.reset_vote()
            players.append(p)
        admin_id = self.admin_id
        if player_id == admin_id and players:
            admin_id = players[0].id
        turn_order = self.turn_order
        if turn_order is not None:
            turn_order = tuple(pid for pid in turn_order if pid != player_id)
        submitted = {pid: w for pid, w in self.submitted_words.items() if pid != player_id}
        return self._with(
            players=tuple(players),
            admin_id=admin_id,
            impostor_ids=self.impostor_ids - {player_id},
            turn_order=turn_order,
            submitted_words=submitted,
        )

    def connect_player(self, player_id: str) -> Room:
        return self._with_player(self._require_player(player_id).connect())

    def disconnect_player(self, player_id: str) -> Room:
        return self._with_player(self._require_player(player_id).disconnect())

    def update_player_display_name(self, player_id: str, display_name: str) -> Room:
        return self._with_player(self._require_player(player_id).update_display_name(display_name))

    def change_language(self, language: str) -> Room:
        self._require_status(LOBBY, 'Language can only be changed in the lobby')
        if language not in SUPPORTED_LANGUAGES:
            raise InvalidStateError(f'Unsupported language: {language}')
        return self._with(language=language)

    # -- game setup --------------------------------------------------------

    def start_collecting(self, impostor_count: int = 1) -> Room:
        if self.status != LOBBY:
            raise GameAlreadyStartedError()
        self._check_can_start(impostor_count)
        return self._with(
            status=COLLECTING_WORDS,
            submitted_words={},
            requested_impostors=impostor_count,
            current_word=None,
            category=None,
        )

    def start_game(self, word: str, category: Optional[str] = None, impostor_count: int = 1) -> Room:
        if self.status != LOBBY:
            raise GameAlreadyStartedError()
        self._check_can_start(impostor_count)
        word = (word or '').strip()
        if not word:
            raise InvalidStateError('Word is required')
        return self._deal(word, category, impostor_count)

    def submit_word(self, player_id: str, word: str) -> Room:
        self._require_status(COLLECTING_WORDS, 'Not in collecting words state')
        self._require_player(player_id)
        if player_id in self.submitted_words:
            raise InvalidStateError('Word already submitted')
        word = (word or '').strip()
        if not word:
            raise InvalidStateError('Word is required')
        submitted = dict(self.submitted_words)
        submitted[player_id] = word
        return self._with(submitted_words=submitted)

    def start_game_from_collecting(self) -> Room:
        self._require_status(COLLECTING_WORDS, 'Not in collecting words state')
        if self.word_count < self.min_words_required:
            raise NotEnoughPlayersError(self.min_words_required, 'words')
        self._check_can_start(self.requested_impostors)
        word = _system_random.choice(list(self.submitted_words.values()))
        return self._deal(word, None, self.requested_impostors)

    def cancel_collection(self) -> Room:
        self._require_status(COLLECTING_WORDS, 'Not in collecting words state')
        return self._with(status=LOBBY, submitted_words={})

    # -- rounds and voting -------------------------------------------------

    def next_round(self) -> Room:
        self._require_status(PLAYING, 'Not in playing state')
        return self._with(current_round=self.current_round + 1)

    def start_voting(self) -> Room:
        self._require_status(PLAYING, 'Not in playing state')
        return self._with(status=VOTING, players=self._reset_votes())

    def cast_vote(self, voter_id: str, target_id: str) -> Room:
        self._require_status(VOTING, 'Not in voting state')
        voter = self._require_player(voter_id)
        if voter.is_eliminated:
            raise InvalidStateError('Eliminated players cannot vote')
        if voter.has_voted:
            raise AlreadyVotedError()
        target = self.get_player(target_id)
        if target is None or target.is_eliminated or target_id == voter_id:
            raise InvalidVoteTargetError()
        return self._with_player(voter.cast_vote(target_id))

    def calculate_votes(self) -> VoteTally:
        counts: Dict[str, int] = {}
        for player in self.active_players:
            if player.has_voted and player.voted_for:
                counts[player.voted_for] = counts.get(player.voted_for, 0) + 1
        return VoteTally(counts=counts, active_count=len(self.active_players))

    def eliminate_player(self, player_id: str) -> Room:
        self._require_status(VOTING, 'Not in voting state')
        player = self._require_player(player_id)
        if player.is_eliminated:
            raise InvalidStateError('Player is already eliminated')
        return self._with_player(player.eliminate())

    def check_win_condition(self) -> Optional[str]:
        if self.status not in (PLAYING, VOTING):
            return None
        active = self.active_players
        if not any(p.id in self.impostor_ids for p in active):
            return IMPOSTOR_CAUGHT
        crew = [p for p in active if p.id not in self.impostor_ids]
        if len(crew) <= 1:
            return IMPOSTOR_SURVIVED
        return None

    def continue_after_voting(self) -> Room:
        self._require_status(VOTING, 'Not in voting state')
        return self._with(
            status=PLAYING,
            players=self._reset_votes(),
            current_round=self.current_round + 1,
        )

    def finish_game(self, win_condition: str) -> Room:
        if self.status not in (PLAYING, VOTING):
            raise InvalidStateError('No game in progress')
        if win_condition not in WIN_CONDITIONS:
            raise InvalidStateError(f'Unknown win condition: {win_condition}')
        return self._with(status=FINISHED, win_condition=win_condition)

    def reset_to_lobby(self) -> Room:
        return self._with(
            status=LOBBY,
            players=tuple(p.reset_for_new_game() for p in self.players),
            current_word=None,
            impostor_ids=frozenset(),
            turn_order=None,
            current_round=0,
            category=None,
            win_condition=None,
            submitted_words={},
        )
