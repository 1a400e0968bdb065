from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from impostor.api import get_rooms, get_words, int_field, json_payload
from impostor.services import usecases
from impostor.services.game.views import room_view, vote_update_view
from impostor.services.scheduler import schedule_collection_timer
from impostor.socketio_events import (
    broadcast_event,
    broadcast_game_ended,
    broadcast_game_started,
    broadcast_room_state,
)

games = Blueprint('games', __name__)


def _state(room):
    return room_view(room, current_user.player_id)


@games.route('/start', methods=['POST'])
@login_required
def start_game():
    data = json_payload()
    mode = data.get('mode') or 'classic'
    result = usecases.start_game(
        get_rooms(),
        get_words(),
        current_user.player_id,
        mode=mode,
        impostor_count=int_field(data, 'impostor_count', 1),
        category=data.get('category') or None,
        custom_word=data.get('custom_word'),
    )
    room = result.room
    current_app.logger.info(f"[start_game] room={room.id} mode={mode} status={room.status}")
    if mode == 'roulette':
        time_limit = int(current_app.config.get('ROULETTE_TIME_LIMIT_SEC', 30))
        broadcast_event(room, 'game:collectingStarted', {
            'impostor_count': room.requested_impostors,
            'time_limit': time_limit,
            'min_words_required': room.min_words_required,
        })
        broadcast_room_state(room)
        schedule_collection_timer(current_app._get_current_object(), room.id)
    else:
        broadcast_game_started(room, mode)
    return jsonify({'room': _state(room), 'mode': mode})


@games.route('/submit-word', methods=['POST'])
@login_required
def submit_word():
    data = json_payload('word')
    result = usecases.submit_word(get_rooms(), current_user.player_id, data['word'])
    room = result.room
    broadcast_event(room, 'game:wordCollected', {
        'player_id': current_user.player_id,
        'word_count': result.word_count,
        'total_players': room.player_count,
        'can_start': result.can_start,
        'all_submitted': result.all_submitted,
    })
    broadcast_room_state(room)
    return jsonify({
        'room': _state(room),
        'word_count': result.word_count,
        'all_submitted': result.all_submitted,
        'can_start': result.can_start,
    })


@games.route('/force-start', methods=['POST'])
@login_required
def force_start():
    result = usecases.force_start(get_rooms(), current_user.player_id)
    broadcast_game_started(result.room, 'roulette')
    return jsonify({'room': _state(result.room)})


@games.route('/cancel', methods=['POST'])
@login_required
def cancel_collection():
    result = usecases.cancel_collection(get_rooms(), current_user.player_id)
    broadcast_room_state(result.room)
    return jsonify({'room': _state(result.room)})


@games.route('/next-round', methods=['POST'])
@login_required
def next_round():
    result = usecases.next_round(get_rooms(), current_user.player_id)
    room = result.room
    broadcast_event(room, 'game:newRound', {
        'round': room.current_round,
        'current_player_id': result.current_player_id,
    })
    broadcast_room_state(room)
    return jsonify({'room': _state(room)})


@games.route('/start-voting', methods=['POST'])
@login_required
def start_voting():
    result = usecases.start_voting(get_rooms(), current_user.player_id)
    room = result.room
    broadcast_event(room, 'game:votingStarted', {'round': room.current_round})
    broadcast_room_state(room)
    return jsonify({'room': _state(room)})


@games.route('/vote', methods=['POST'])
@login_required
def cast_vote():
    data = json_payload('target_id')
    result = usecases.cast_vote(get_rooms(), current_user.player_id, str(data['target_id']))
    room = result.room
    update = vote_update_view(room)
    update['all_voted'] = result.all_voted
    broadcast_event(room, 'vote:update', update)
    broadcast_room_state(room)
    return jsonify({'room': _state(room), **update})


@games.route('/confirm-vote', methods=['POST'])
@login_required
def confirm_vote():
    data = json_payload()
    eliminate = data.get('eliminate', True)
    if not isinstance(eliminate, bool):
        eliminate = str(eliminate).lower() not in ('0', 'false', 'no')
    result = usecases.confirm_vote(get_rooms(), current_user.player_id, eliminate=eliminate)
    room = result.room
    outcome = {
        'eliminated_id': result.eliminated_id,
        'was_impostor': result.was_impostor,
        'is_tie': result.is_tie,
        'results': [{'player_id': pid, 'votes': count} for pid, count in result.results],
        'game_ended': result.game_ended,
        'win_condition': result.win_condition,
    }
    broadcast_event(room, 'vote:result', outcome)
    if result.game_ended:
        broadcast_game_ended(room)
    else:
        broadcast_event(room, 'game:newRound', {
            'round': room.current_round,
            'current_player_id': room.current_player_id,
        })
    broadcast_room_state(room)
    return jsonify({'room': _state(room), **outcome})


@games.route('/play-again', methods=['POST'])
@login_required
def play_again():
    result = usecases.play_again(get_rooms(), current_user.player_id)
    broadcast_room_state(result.room)
    return jsonify({'room': _state(result.room)})
