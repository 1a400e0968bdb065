from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class Player:
    """One participant inside a room.

    Transitions never fail and never mutate; each returns a new Player.
    Whether a transition is legal right now is decided by the Room.
    """

    id: str
    display_name: str
    is_connected: bool = True
    is_eliminated: bool = False
    has_voted: bool = False
    voted_for: Optional[str] = None

    @property
    def can_vote(self) -> bool:
        return not self.is_eliminated and not self.has_voted

    def connect(self) -> Player:
        return replace(self, is_connected=True)

    def disconnect(self) -> Player:
        return replace(self, is_connected=False)

    def eliminate(self) -> Player:
        return replace(self, is_eliminated=True)

    def cast_vote(self, target_id: str) -> Player:
        return replace(self, has_voted=True, voted_for=target_id)

    def reset_vote(self) -> Player:
        return replace(self, has_voted=False, voted_for=None)

    def reset_for_new_game(self) -> Player:
        return replace(self, is_eliminated=False, has_voted=False, voted_for=None)

    def update_display_name(self, display_name: str) -> Player:
        return replace(self, display_name=display_name)

    def to_dict(self):
        return {
            'id': self.id,
            'display_name': self.display_name,
            'is_connected': self.is_connected,
            'is_eliminated': self.is_eliminated,
            'has_voted': self.has_voted,
        }
