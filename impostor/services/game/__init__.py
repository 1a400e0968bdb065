"""Game domain: players, the room state machine and client projections.

This package contains pure domain logic that should be imported by the
use cases, keeping transport and storage concerns separated from core
game mechanics.
"""
from .errors import (  # noqa: F401
    AlreadyInRoomError,
    AlreadyVotedError,
    DomainError,
    GameAlreadyStartedError,
    InvalidStateError,
    InvalidVoteTargetError,
    MaxRoomsReachedError,
    NotAdminError,
    NotEnoughPlayersError,
    PlayerNotFoundError,
    RoomNotFoundError,
)
from .player import Player  # noqa: F401
from .room import Room, VoteTally  # noqa: F401
