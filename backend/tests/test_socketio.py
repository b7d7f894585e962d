from courtroom.services import runner


def _names(client):
    return [pkt['name'] for pkt in client.get_received('/ws')]


def _start(client, duration=120):
    return client.post('/api/play/start', json={'duration': duration}).get_json()['session_id']


def test_socket_connect_and_join(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    sio_client.emit('join_session', {'session_id': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    joined = [pkt for pkt in received if pkt['name'] == 'joined']
    assert joined and joined[0]['args'][0]['room'] == 'session:1'


def test_join_requires_session_id(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_session', {}, namespace='/ws')
    assert 'error' in _names(sio_client)


def test_play_events_reach_the_session_room(client, sio_client):
    session_id = _start(client)
    sio_client.emit('join_session', {'session_id': session_id}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post(f'/api/play/{session_id}/tick', json={'seconds': 30})
    received = sio_client.get_received('/ws')
    popups = [pkt['args'][0] for pkt in received if pkt['name'] == 'popup']
    assert popups and popups[0]['penalty_key'] == 'DisabilityAct'
    assert any(pkt['name'] == 'state_update' for pkt in received)


def test_penalty_emits_courtroom_transition(client, sio_client):
    session_id = _start(client)
    sio_client.emit('join_session', {'session_id': session_id}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post(f'/api/play/{session_id}/tick', json={'seconds': 90})
    names = _names(sio_client)
    assert 'courtroomTransition' in names
    assert 'sessionUpdate' in names


def test_owner_disconnect_ends_session(flask_app, client, sio_client):
    from courtroom import socketio as _sio
    session_id = _start(client)

    host_client = _sio.test_client(flask_app, namespace='/ws')
    host_client.emit('join_session', {'session_id': session_id, 'is_session_owner': True}, namespace='/ws')

    sio_client.emit('join_session', {'session_id': session_id}, namespace='/ws')
    sio_client.get_received('/ws')

    host_client.disconnect(namespace='/ws')
    assert 'sessionEnded' in _names(sio_client)
    assert runner.get_live_game(session_id) is None


def test_guest_disconnect_keeps_game(flask_app, client):
    from courtroom import socketio as _sio
    session_id = _start(client)
    guest = _sio.test_client(flask_app, namespace='/ws')
    guest.emit('join_session', {'session_id': session_id}, namespace='/ws')
    guest.disconnect(namespace='/ws')
    assert runner.get_live_game(session_id) is not None


def test_owner_leave_ends_session_immediately(flask_app, client, sio_client):
    from courtroom import socketio as _sio
    session_id = _start(client)
    host_client = _sio.test_client(flask_app, namespace='/ws')
    host_client.emit('join_session', {'session_id': session_id, 'is_session_owner': True}, namespace='/ws')
    sio_client.emit('join_session', {'session_id': session_id}, namespace='/ws')
    sio_client.get_received('/ws')

    host_client.emit('leave_session', {'session_id': session_id}, namespace='/ws')
    assert 'left' in [pkt['name'] for pkt in host_client.get_received('/ws')]
    assert 'sessionEnded' in _names(sio_client)
    assert runner.get_live_game(session_id) is None
    host_client.disconnect(namespace='/ws')


def test_chatter_feeds_the_live_game(flask_app, client):
    import random
    session_id = _start(client)
    game = runner.get_live_game(session_id)
    payload = runner.post_chatter(flask_app, session_id, game, rng=random.Random(5))
    assert payload['sender'] in runner.CHATTER_SENDERS
    assert game.current_popup.source == payload['sender']
    messages = client.get(f'/api/messages?session_id={session_id}').get_json()
    assert [m['content'] for m in messages] == [payload['content']]


def test_session_timeout_ends_crud_session(flask_app, client):
    session_id = client.post('/api/sessions', json={}).get_json()['id']
    runner.end_session(flask_app, session_id)
    session = client.get(f'/api/sessions/{session_id}').get_json()
    assert session['phase'] == 'ENDED'
    assert session['end_time'] is not None
