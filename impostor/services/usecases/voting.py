"""Voting phase actions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from impostor.services.game.errors import InvalidStateError
from impostor.services.game.room import FINISHED, VOTING, Room, VoteTally

from .base import by_player, require_admin, transact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartVotingResult:
    room: Room


@dataclass(frozen=True)
class CastVoteResult:
    room: Room
    votes: Dict[str, str]
    tally: VoteTally
    all_voted: bool


@dataclass(frozen=True)
class ConfirmVoteResult:
    room: Room
    eliminated_id: Optional[str]
    was_impostor: bool
    is_tie: bool
    results: List[Tuple[str, int]] = field(default_factory=list)
    game_ended: bool = False
    win_condition: Optional[str] = None


def start_voting(rooms, admin_id) -> StartVotingResult:
    def step(room):
        require_admin(room, admin_id)
        return room.start_voting()

    _, room = transact(rooms, by_player(rooms, admin_id), step)
    logger.info(f"[voting-start] room={room.id} round={room.current_round}")
    return StartVotingResult(room=room)


def cast_vote(rooms, voter_id, target_id) -> CastVoteResult:
    _, room = transact(rooms, by_player(rooms, voter_id), lambda room: room.cast_vote(voter_id, target_id))
    logger.info(f"[vote-cast] room={room.id} voter={voter_id} target={target_id}")
    return CastVoteResult(
        room=room,
        votes=room.votes,
        tally=room.calculate_votes(),
        all_voted=room.all_voted,
    )


def confirm_vote(rooms, admin_id, eliminate=True) -> ConfirmVoteResult:
    """Resolve the voting phase.

    A tie (or ``eliminate=False``) eliminates nobody and play goes on. Otherwise
    the top-voted player is eliminated and the game ends if that decides it.
    """
    def step(room):
        require_admin(room, admin_id)
        if room.status != VOTING:
            raise InvalidStateError('Not in voting state')
        tally = room.calculate_votes()
        if not eliminate or tally.is_tie:
            return room.continue_after_voting()
        updated = room.eliminate_player(tally.leader_id)
        condition = updated.check_win_condition()
        if condition:
            return updated.finish_game(condition)
        return updated.continue_after_voting()

    before, room = transact(rooms, by_player(rooms, admin_id), step)
    tally = before.calculate_votes()
    eliminated_id = tally.leader_id if eliminate else None
    game_ended = room.status == FINISHED
    logger.info(
        f"[vote-confirm] room={room.id} eliminated={eliminated_id} tie={tally.is_tie} ended={game_ended}"
    )
    return ConfirmVoteResult(
        room=room,
        eliminated_id=eliminated_id,
        was_impostor=bool(eliminated_id) and before.is_impostor(eliminated_id),
        is_tie=tally.is_tie,
        results=tally.results,
        game_ended=game_ended,
        win_condition=room.win_condition if game_ended else None,
    )
