from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from impostor.api import get_words, json_payload
from impostor.services.game.errors import NotAdminError

words = Blueprint('words', __name__)


def _require_reviewer():
    if current_user.username not in (current_app.config.get('ADMIN_USERNAMES') or []):
        raise NotAdminError()


@words.route('/categories', methods=['GET'])
def categories():
    return jsonify({'categories': get_words().categories()})


@words.route('/suggest', methods=['POST'])
@login_required
def suggest():
    data = json_payload('word', 'category_id')
    result = get_words().suggest_word(
        data['word'],
        data['category_id'],
        suggested_by=current_user.player_id,
        language=data.get('language') or current_app.config.get('DEFAULT_LANGUAGE', 'es'),
    )
    status = 201 if result.success else (409 if result.already_exists else 400)
    return jsonify({'success': result.success, 'already_exists': result.already_exists}), status


@words.route('/pending', methods=['GET'])
@login_required
def pending():
    _require_reviewer()
    return jsonify({'words': get_words().pending_suggestions()})


@words.route('/<int:word_id>/review', methods=['POST'])
@login_required
def review(word_id):
    _require_reviewer()
    data = json_payload('approve')
    if not get_words().review(word_id, bool(data['approve'])):
        return jsonify({'error': 'WORD_NOT_FOUND', 'message': 'No pending suggestion with that id'}), 404
    return jsonify({'success': True})
