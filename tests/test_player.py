from impostor.services.game.player import Player


def test_new_player_defaults():
    p = Player(id='p1', display_name='Ana')
    assert p.is_connected
    assert not p.is_eliminated
    assert not p.has_voted
    assert p.voted_for is None
    assert p.can_vote


def test_transitions_return_new_values():
    p = Player(id='p1', display_name='Ana')
    voted = p.cast_vote('p2')
    assert voted.has_voted and voted.voted_for == 'p2'
    assert not voted.can_vote
    # p itself is unchanged
    assert not p.has_voted

    assert voted.reset_vote().voted_for is None
    assert not p.disconnect().is_connected
    assert p.disconnect().connect().is_connected
    assert p.update_display_name('Ana B').display_name == 'Ana B'


def test_eliminated_player_cannot_vote():
    p = Player(id='p1', display_name='Ana').eliminate()
    assert p.is_eliminated
    assert not p.can_vote


def test_reset_for_new_game_keeps_identity_and_connection():
    p = Player(id='p1', display_name='Ana', is_connected=False).eliminate().cast_vote('p2')
    fresh = p.reset_for_new_game()
    assert fresh.id == 'p1' and fresh.display_name == 'Ana'
    assert not fresh.is_connected
    assert not fresh.is_eliminated
    assert not fresh.has_voted and fresh.voted_for is None


def test_to_dict_hides_vote_target():
    data = Player(id='p1', display_name='Ana').cast_vote('p2').to_dict()
    assert data == {
        'id': 'p1',
        'display_name': 'Ana',
        'is_connected': True,
        'is_eliminated': False,
        'has_voted': True,
    }
