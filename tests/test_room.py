import random
from collections import Counter
from dataclasses import replace

import pytest

from impostor.services.game.errors import (
    AlreadyVotedError,
    GameAlreadyStartedError,
    InvalidStateError,
    InvalidVoteTargetError,
    NotEnoughPlayersError,
    PlayerNotFoundError,
)
from impostor.services.game.room import (
    CODE_CHARS,
    COLLECTING_WORDS,
    FINISHED,
    IMPOSTOR_CAUGHT,
    IMPOSTOR_SURVIVED,
    LOBBY,
    PLAYING,
    VOTING,
    Room,
    generate_code,
    is_impostor_count_valid,
    recommended_impostors,
    shuffled,
)


def make_room(n=3, language='es'):
    room = Room.create('room-1', 'ABCD', 'p1', 'Player 1', language)
    for i in range(2, n + 1):
        room = room.add_player(f'p{i}', f'Player {i}')
    return room


def started(n=3, k=1, word='gato'):
    return make_room(n).start_game(word, 'animals', k)


def crew_of(room):
    return [pid for pid in room.player_ids if not room.is_impostor(pid)]


def test_create_room_has_admin_as_only_player():
    room = make_room(1)
    assert room.status == LOBBY
    assert room.admin_id == 'p1'
    assert room.player_ids == ['p1']
    assert room.version == 0


def test_create_room_rejects_unknown_language():
    with pytest.raises(InvalidStateError):
        Room.create('r', 'ABCD', 'p1', 'A', 'xx')


def test_generate_code_uses_unambiguous_alphabet():
    rng = random.Random(7)
    for _ in range(50):
        code = generate_code(rng)
        assert len(code) == 4
        assert all(ch in CODE_CHARS for ch in code)
    assert not set('IO01L') & set(CODE_CHARS)


def test_shuffled_is_a_permutation():
    items = list(range(10))
    result = shuffled(items, random.Random(1))
    assert sorted(result) == items
    assert items == list(range(10))


def test_add_existing_player_reconnects_instead_of_duplicating():
    room = make_room(3).disconnect_player('p2')
    room = room.add_player('p2', 'Player 2')
    assert room.player_count == 3
    assert room.get_player('p2').is_connected


def test_add_player_outside_lobby_is_rejected():
    with pytest.raises(GameAlreadyStartedError):
        started().add_player('p9', 'Late')


def test_remove_admin_transfers_to_next_in_join_order():
    room = make_room(3).remove_player('p1')
    assert room.admin_id == 'p2'
    assert room.player_ids == ['p2', 'p3']


def test_remove_unknown_player():
    with pytest.raises(PlayerNotFoundError):
        make_room(3).remove_player('nobody')


def test_remove_player_clears_votes_against_them():
    room = started(4).start_voting().cast_vote('p1', 'p2').cast_vote('p3', 'p4')
    room = room.remove_player('p2')
    assert room.votes == {'p3': 'p4'}
    assert not room.get_player('p1').has_voted
    assert 'p2' not in room.turn_order


def test_start_game_requires_three_players():
    with pytest.raises(NotEnoughPlayersError):
        make_room(2).start_game('gato', None, 1)
    with pytest.raises(NotEnoughPlayersError):
        make_room(2).start_collecting(1)


def test_start_game_twice_is_rejected():
    with pytest.raises(GameAlreadyStartedError):
        started().start_game('perro', None, 1)


def test_start_game_requires_a_word():
    with pytest.raises(InvalidStateError):
        make_room(3).start_game('   ', None, 1)


@pytest.mark.parametrize('n,k', [(3, 1), (4, 2), (6, 3), (9, 4), (12, 6)])
def test_start_game_selects_exactly_k_distinct_impostors(n, k):
    room = started(n, k)
    assert room.status == PLAYING
    assert len(room.impostor_ids) == k
    assert room.impostor_ids <= set(room.player_ids)
    assert sorted(room.turn_order) == sorted(room.player_ids)
    assert room.current_round == 1
    assert room.current_word == 'gato'


def test_six_players_two_impostors_accepted_four_rejected():
    room = make_room(6)
    assert len(room.start_game('gato', None, 2).impostor_ids) == 2
    with pytest.raises(InvalidStateError):
        room.start_game('gato', None, 4)


@pytest.mark.parametrize('k', [0, -1, 7])
def test_impostor_count_bounds(k):
    with pytest.raises(InvalidStateError):
        make_room(14).start_game('gato', None, k)


def test_impostor_count_helpers():
    assert is_impostor_count_valid(1, 3)
    assert is_impostor_count_valid(2, 4)
    assert not is_impostor_count_valid(2, 3)
    assert not is_impostor_count_valid(7, 20)
    assert recommended_impostors(4) == (1, 1)
    assert recommended_impostors(8) == (1, 2)


def test_impostor_selection_is_uniform():
    room = make_room(5)
    trials = 5000
    counts = Counter()
    for _ in range(trials):
        counts.update(room.start_game('gato', None, 1).impostor_ids)
    expected = trials / 5
    # sampling sd is about 28, so only a biased draw misses this band
    for pid in room.player_ids:
        assert abs(counts[pid] - expected) < 0.1 * trials


def test_next_round_keeps_turn_order_and_players():
    room = started(4)
    nxt = room.next_round()
    assert nxt.current_round == 2
    assert nxt.turn_order == room.turn_order
    assert nxt.players == room.players


def test_current_player_rotates_and_skips_eliminated():
    room = started(4)
    order = room.turn_order
    assert room.current_player_id == order[0]
    assert room.next_round().current_player_id == order[1]
    voting = room.start_voting()
    target = order[1]
    after = voting.eliminate_player(target)
    # round 2 would start with the eliminated player, so the next one opens
    after = after.continue_after_voting()
    assert after.current_round == 2
    assert after.current_player_id == order[2]


def test_next_round_outside_play_is_rejected():
    with pytest.raises(InvalidStateError):
        make_room(3).next_round()
    with pytest.raises(InvalidStateError):
        started().start_voting().next_round()


def test_cast_vote_rules():
    room = started(4).start_voting()
    assert room.status == VOTING
    with pytest.raises(InvalidVoteTargetError):
        room.cast_vote('p1', 'p1')
    with pytest.raises(InvalidVoteTargetError):
        room.cast_vote('p1', 'ghost')
    with pytest.raises(PlayerNotFoundError):
        room.cast_vote('ghost', 'p1')

    voted = room.cast_vote('p1', 'p2')
    with pytest.raises(AlreadyVotedError):
        voted.cast_vote('p1', 'p3')
    assert voted.calculate_votes().counts == {'p2': 1}


def test_all_voted_ignores_eliminated_players():
    room = started(5, 1)
    crew = crew_of(room)
    voting = room.start_voting().eliminate_player(crew[0])
    assert not voting.all_voted
    for voter in voting.player_ids:
        if voter != crew[0]:
            target = crew[1] if voter != crew[1] else crew[2]
            voting = voting.cast_vote(voter, target)
    assert voting.all_voted


def test_cast_vote_outside_voting_is_rejected():
    with pytest.raises(InvalidStateError):
        started().cast_vote('p1', 'p2')


def test_eliminated_players_cannot_vote_or_be_voted():
    room = started(5, 1)
    crew = crew_of(room)
    voting = room.start_voting().eliminate_player(crew[0])
    with pytest.raises(InvalidStateError):
        voting.cast_vote(crew[0], crew[1])
    with pytest.raises(InvalidVoteTargetError):
        voting.cast_vote(crew[1], crew[0])


def test_start_voting_gives_everyone_a_fresh_ballot():
    room = started(4).start_voting().cast_vote('p1', 'p2').continue_after_voting()
    again = room.start_voting()
    assert again.votes == {}
    assert all(not p.has_voted for p in again.players)


def test_vote_tally_threshold_and_leader():
    room = started(4).start_voting()
    room = room.cast_vote('p1', 'p2').cast_vote('p3', 'p2').cast_vote('p4', 'p2')
    tally = room.calculate_votes()
    assert tally.threshold == 3
    assert tally.two_thirds_reached
    assert tally.leader_id == 'p2'
    assert not tally.is_tie
    assert tally.results == [('p2', 3)]


def test_vote_tally_ties():
    room = started(4).start_voting()
    assert room.calculate_votes().is_tie  # nobody voted
    tied = room.cast_vote('p1', 'p2').cast_vote('p2', 'p1')
    tally = tied.calculate_votes()
    assert tally.is_tie
    assert tally.leader_id is None
    assert not tally.two_thirds_reached


def test_win_condition_impostor_caught():
    room = started(4, 1).start_voting()
    impostor = next(iter(room.impostor_ids))
    after = room.eliminate_player(impostor)
    assert after.check_win_condition() == IMPOSTOR_CAUGHT


def test_win_condition_impostor_survived():
    room = started(3, 1).start_voting()
    crew = crew_of(room)
    after = room.eliminate_player(crew[0])
    assert after.check_win_condition() == IMPOSTOR_SURVIVED


def test_win_condition_none_while_game_open():
    room = started(6, 2).start_voting()
    crew = crew_of(room)
    after = room.eliminate_player(crew[0])
    assert after.check_win_condition() is None
    impostors = sorted(room.impostor_ids)
    after = room.eliminate_player(impostors[0])
    assert after.check_win_condition() is None
    assert make_room(3).check_win_condition() is None


def test_eliminate_twice_is_rejected():
    room = started(4).start_voting().eliminate_player('p2')
    with pytest.raises(InvalidStateError):
        room.eliminate_player('p2')


def test_three_player_classic_scenario():
    room = make_room(3).start_game('gato', 'animals', 1)
    # Pin the impostor for a deterministic scenario
    room = replace(room, impostor_ids=frozenset({'p1'}))
    room = room.next_round().next_round().start_voting()
    room = room.cast_vote('p2', 'p1').cast_vote('p3', 'p1')
    tally = room.calculate_votes()
    assert tally.leader_id == 'p1'
    room = room.eliminate_player(tally.leader_id)
    condition = room.check_win_condition()
    assert condition == IMPOSTOR_CAUGHT
    room = room.finish_game(condition)
    assert room.status == FINISHED
    assert room.win_condition == IMPOSTOR_CAUGHT


def test_continue_after_voting_returns_to_play():
    room = started(4).start_voting().cast_vote('p1', 'p2')
    after = room.continue_after_voting()
    assert after.status == PLAYING
    assert after.current_round == 2
    assert after.votes == {}


def test_finish_game_requires_a_running_game():
    with pytest.raises(InvalidStateError):
        make_room(3).finish_game(IMPOSTOR_CAUGHT)
    with pytest.raises(InvalidStateError):
        started().finish_game('draw')


def test_reset_to_lobby_then_start_is_like_fresh_room():
    room = started(4).start_voting()
    room = room.cast_vote('p1', 'p2').eliminate_player('p3')
    room = room.finish_game(IMPOSTOR_SURVIVED).reset_to_lobby()
    assert room.status == LOBBY
    assert room.admin_id == 'p1'
    assert room.player_ids == ['p1', 'p2', 'p3', 'p4']
    assert room.current_word is None
    assert room.impostor_ids == frozenset()
    assert room.turn_order is None
    assert room.current_round == 0
    assert room.win_condition is None
    assert all(not p.is_eliminated and not p.has_voted for p in room.players)

    again = room.start_game('perro', None, 1)
    assert again.status == PLAYING
    assert again.current_round == 1
    assert len(again.impostor_ids) == 1
    assert all(not p.is_eliminated for p in again.players)


def test_change_language_in_lobby_only():
    room = make_room(3).change_language('en')
    assert room.language == 'en'
    with pytest.raises(InvalidStateError):
        room.change_language('fr')
    with pytest.raises(InvalidStateError):
        started().change_language('en')


def test_roulette_scenario():
    room = make_room(5).start_collecting(1)
    assert room.status == COLLECTING_WORDS
    assert room.min_words_required == 3
    assert room.impostor_ids == frozenset()

    room = room.submit_word('p1', ' gato ').submit_word('p2', 'perro')
    assert room.word_count == 2
    assert not room.can_start_from_collecting
    with pytest.raises(NotEnoughPlayersError):
        room.start_game_from_collecting()

    room = room.submit_word('p3', 'caballo')
    assert room.can_start_from_collecting
    assert not room.all_players_submitted
    playing = room.start_game_from_collecting()
    assert playing.status == PLAYING
    assert playing.current_word in {'gato', 'perro', 'caballo'}
    assert len(playing.impostor_ids) == 1
    assert playing.submitted_words == {}


def test_roulette_word_choice_covers_all_submissions():
    room = make_room(3).start_collecting(1)
    room = room.submit_word('p1', 'uno').submit_word('p2', 'dos').submit_word('p3', 'tres')
    seen = {room.start_game_from_collecting().current_word for _ in range(300)}
    assert seen == {'uno', 'dos', 'tres'}


def test_submit_word_rules():
    with pytest.raises(InvalidStateError):
        make_room(3).submit_word('p1', 'gato')
    room = make_room(3).start_collecting(1).submit_word('p1', 'gato')
    with pytest.raises(InvalidStateError):
        room.submit_word('p1', 'perro')
    with pytest.raises(InvalidStateError):
        room.submit_word('p2', '   ')
    with pytest.raises(PlayerNotFoundError):
        room.submit_word('ghost', 'perro')


def test_cancel_collection_returns_to_lobby():
    room = make_room(3).start_collecting(1).submit_word('p1', 'gato').cancel_collection()
    assert room.status == LOBBY
    assert room.submitted_words == {}
    with pytest.raises(InvalidStateError):
        room.cancel_collection()


def test_transitions_touch_last_activity_and_keep_version():
    room = make_room(3)
    later = room.start_game('gato', None, 1)
    assert later.last_activity >= room.last_activity
    assert later.version == room.version
