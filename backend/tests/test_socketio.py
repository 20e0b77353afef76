def _flush(sio_client):
    sio_client.get_received('/ws')


def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'connected' for pkt in received)

    # Join a room and expect a joined ack
    sio_client.emit('join_game', {'game_code': 'abcd12'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    joined = [pkt for pkt in received if pkt['name'] == 'joined']
    assert joined and joined[0]['args'][0]['room'] == 'game:ABCD12'


def test_join_requires_code(sio_client):
    _flush(sio_client)
    sio_client.emit('join_game', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)


def test_ping_pong(sio_client):
    _flush(sio_client)
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    pongs = [pkt for pkt in received if pkt['name'] == 'pong']
    assert pongs and pongs[0]['args'][0] == {'n': 1}


def test_score_save_broadcasts_state_update(sio_client, make_client):
    alice = make_client('alice')
    res = alice.post('/api/games/create', json={'player_ids': ['Bob']})
    game = res.get_json()['game']

    sio_client.emit('join_game', {'game_code': game['join_code']}, namespace='/ws')
    _flush(sio_client)

    alice.post(f"/api/games/{game['id']}/scores", json={'scores': [
        {'player_id': 'Bob', 'round': 1, 'value': 3},
    ]})
    received = sio_client.get_received('/ws')
    updates = [pkt for pkt in received if pkt['name'] == 'state_update']
    assert updates
    assert updates[0]['args'][0] == {'game_code': game['join_code'], 'game_id': game['id']}


def test_leave_game(sio_client):
    sio_client.emit('join_game', {'game_code': 'ABCD12'}, namespace='/ws')
    _flush(sio_client)
    sio_client.emit('leave_game', {'game_code': 'ABCD12'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'left' for pkt in received)


def test_disconnect_after_join(flask_app, sio_client):
    from scoreboard.socketio_events import broadcast_game_update

    sio_client.emit('join_game', {'game_code': 'ABCD12'}, namespace='/ws')
    sio_client.disconnect(namespace='/ws')
    assert not sio_client.is_connected('/ws')
    with flask_app.app_context():
        broadcast_game_update('abcd12-0000')
