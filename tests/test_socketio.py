from impostor import socketio


def events(sio, name):
    return [pkt['args'][0] for pkt in sio.get_received('/ws') if pkt['name'] == name]


def test_unauthenticated_socket_is_refused(flask_app):
    anonymous = socketio.test_client(flask_app, namespace='/ws')
    assert not anonymous.is_connected('/ws')


def test_socket_connect_and_ping(make_player, socket_for):
    http, player_id = make_player('alice')
    sio = socket_for(http)
    assert sio.is_connected('/ws')
    received = sio.get_received('/ws')
    assert any(pkt['name'] == 'connected' and pkt['args'][0]['player_id'] == player_id for pkt in received)

    sio.emit('ping', {'n': 1}, namespace='/ws')
    assert events(sio, 'pong') == [{'n': 1}]


def test_room_sync_without_room(make_player, socket_for):
    http, _ = make_player('alice')
    sio = socket_for(http)
    sio.get_received('/ws')
    sio.emit('room:sync', namespace='/ws')
    assert events(sio, 'room:state') == [{'room': None}]


def test_room_sync_inside_room(make_player, socket_for):
    http, player_id = make_player('alice')
    code = http.post('/api/rooms/create', json={}).get_json()['code']
    sio = socket_for(http)
    sio.get_received('/ws')
    sio.emit('room:sync', namespace='/ws')
    state = events(sio, 'room:state')[-1]
    assert state['code'] == code
    assert state['admin_id'] == player_id


def test_join_broadcasts_to_members(make_player, socket_for):
    alice, alice_id = make_player('alice')
    code = alice.post('/api/rooms/create', json={}).get_json()['code']
    alice_sio = socket_for(alice)
    alice_sio.get_received('/ws')

    bob, bob_id = make_player('bob')
    bob.post('/api/rooms/join', json={'code': code})
    received = alice_sio.get_received('/ws')
    joined = [pkt['args'][0] for pkt in received if pkt['name'] == 'room:playerJoined']
    assert joined and joined[0]['player']['id'] == bob_id
    states = [pkt['args'][0] for pkt in received if pkt['name'] == 'room:state']
    assert states[-1]['players'][-1]['id'] == bob_id


def test_game_started_is_sanitized_per_recipient(make_player, socket_for, seeded_words):
    players = [make_player(name) for name in ('alice', 'bob', 'cara')]
    admin = players[0][0]
    code = admin.post('/api/rooms/create', json={}).get_json()['code']
    for http, _ in players[1:]:
        http.post('/api/rooms/join', json={'code': code})
    sockets = {pid: socket_for(http) for http, pid in players}
    for sio in sockets.values():
        sio.get_received('/ws')

    admin.post('/api/games/start', json={'mode': 'classic', 'category': 'animals'})

    started = {pid: events(sio, 'game:started') for pid, sio in sockets.items()}
    impostors = [pid for pid, payloads in started.items() if payloads[0]['is_impostor']]
    assert len(impostors) == 1
    impostor = impostors[0]
    for pid, payloads in started.items():
        payload = payloads[0]
        if pid == impostor:
            assert payload['word'] is None
            assert payload['impostor_ids'] == [impostor]
        else:
            assert payload['word'] in ('perro', 'gato', 'caballo')
            assert payload['impostor_ids'] == []


def test_room_state_hides_secrets_from_impostor(make_player, socket_for, seeded_words):
    players = [make_player(name) for name in ('alice', 'bob', 'cara')]
    admin = players[0][0]
    code = admin.post('/api/rooms/create', json={}).get_json()['code']
    for http, _ in players[1:]:
        http.post('/api/rooms/join', json={'code': code})
    admin.post('/api/games/start', json={'mode': 'classic'})

    for http, pid in players:
        sio = socket_for(http)
        state = events(sio, 'room:state')[-1]
        assert state['status'] == 'playing'
        if state['is_impostor']:
            assert state['current_word'] is None
            assert state['impostor_ids'] == [pid]
        else:
            assert state['current_word'] is not None
            assert state['impostor_ids'] == []


def test_disconnect_marks_player_offline(make_player, socket_for):
    alice, _ = make_player('alice')
    code = alice.post('/api/rooms/create', json={}).get_json()['code']
    bob, bob_id = make_player('bob')
    bob.post('/api/rooms/join', json={'code': code})

    bob_sio = socket_for(bob)
    bob_sio.disconnect(namespace='/ws')
    state = alice.get('/api/rooms/current').get_json()['room']
    assert {p['id']: p['is_connected'] for p in state['players']}[bob_id] is False

    socket_for(bob)
    state = alice.get('/api/rooms/current').get_json()['room']
    assert {p['id']: p['is_connected'] for p in state['players']}[bob_id] is True
