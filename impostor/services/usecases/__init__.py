"""One function per player action, each a single atomic read-modify-write of one room."""
from .base import transact  # noqa: F401
from .game import (  # noqa: F401
    GAME_MODES,
    auto_start_collected,
    cancel_collection,
    force_start,
    next_round,
    play_again,
    start_game,
    submit_word,
)
from .rooms import (  # noqa: F401
    change_language,
    create_room,
    join_room,
    kick_player,
    leave_room,
    rename_player,
    set_connected,
    sweep_inactive,
)
from .voting import cast_vote, confirm_vote, start_voting  # noqa: F401
