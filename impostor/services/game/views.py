"""Role-aware projections of a Room for one recipient.

The secret word goes to crew members during play and to everyone once the
room is finished. Impostor identity goes to the impostor themself during
play and to everyone once finished. Roulette submissions are never sent.
"""
from typing import Optional

from .room import FINISHED, IMPOSTOR_CAUGHT, PLAYING, VOTING, Room, recommended_impostors


def _word_for(room: Room, viewer_id: Optional[str]):
    if room.status == FINISHED:
        return room.current_word
    if room.status in (PLAYING, VOTING) and viewer_id and room.has_player(viewer_id):
        if not room.is_impostor(viewer_id):
            return room.current_word
    return None


def _impostors_for(room: Room, viewer_id: Optional[str]):
    if room.status == FINISHED:
        return sorted(room.impostor_ids)
    if viewer_id and room.is_impostor(viewer_id):
        return [viewer_id]
    return []


def room_view(room: Room, viewer_id: Optional[str] = None) -> dict:
    is_finished = room.status == FINISHED
    return {
        'id': room.id,
        'code': room.code,
        'admin_id': room.admin_id,
        'status': room.status,
        'language': room.language,
        'players': [p.to_dict() for p in room.players],
        'current_round': room.current_round,
        'category': room.category,
        'current_word': _word_for(room, viewer_id),
        'is_impostor': bool(viewer_id) and room.is_impostor(viewer_id),
        'impostor_ids': _impostors_for(room, viewer_id),
        'impostor_count': room.impostor_count,
        'recommended_impostors': list(recommended_impostors(room.player_count)),
        'turn_order': list(room.turn_order or []),
        'current_player_id': room.current_player_id,
        'win_condition': room.win_condition if is_finished else None,
        'word_count': room.word_count,
        'min_words_required': room.min_words_required,
        'has_submitted_word': bool(viewer_id) and room.has_submitted_word(viewer_id),
        'votes': room.votes if room.status == VOTING else {},
    }


def game_started_view(room: Room, viewer_id: str, mode: str) -> dict:
    """Payload of ``game:started`` for one recipient."""
    return {
        'word': _word_for(room, viewer_id),
        'is_impostor': room.is_impostor(viewer_id),
        'impostor_ids': _impostors_for(room, viewer_id),
        'turn_order': list(room.turn_order or []),
        'mode': mode,
        'impostor_count': room.impostor_count,
        'category': room.category,
    }


def game_ended_view(room: Room) -> dict:
    return {
        'winner': 'crew' if room.win_condition == IMPOSTOR_CAUGHT else 'impostor',
        'win_condition': room.win_condition,
        'impostor_ids': sorted(room.impostor_ids),
        'word': room.current_word,
    }


def vote_update_view(room: Room) -> dict:
    tally = room.calculate_votes()
    return {
        'votes': room.votes,
        'counts': tally.counts,
        'threshold': tally.threshold,
        'two_thirds_reached': tally.two_thirds_reached,
    }
