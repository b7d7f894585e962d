def _start(client, duration=120):
    res = client.post('/api/play/start', json={'duration': duration})
    assert res.status_code == 201
    return res.get_json()


# ---- Auth ----

def test_register_login_logout(client):
    res = client.post('/register', json={'email': 'Ada@Example.com', 'password': 'secret', 'name': 'Ada'})
    assert res.status_code == 201
    assert res.get_json()['user']['email'] == 'ada@example.com'

    assert client.get('/check_login').get_json()['success']
    assert client.post('/logout').get_json()['success']
    assert client.get('/check_login').status_code == 401

    res = client.post('/login', json={'email': 'ada@example.com', 'password': 'wrong'})
    assert res.status_code == 401
    res = client.post('/login', json={'email': 'ada@example.com', 'password': 'secret'})
    assert res.get_json()['success']


def test_register_requires_fields_and_unique_email(client):
    assert client.post('/register', json={'email': 'a@b.c'}).status_code == 400
    client.post('/register', json={'email': 'a@b.c', 'password': 'x'})
    client.post('/logout')
    assert client.post('/register', json={'email': 'a@b.c', 'password': 'y'}).status_code == 400


def test_my_sessions_uses_logged_in_user(client, seeded):
    client.post('/login', json={'email': 'developer@example.com', 'password': 'password'})
    session = client.post('/api/sessions', json={}).get_json()
    assert session['user']['email'] == 'developer@example.com'
    mine = client.get('/sessions/mine').get_json()
    assert [s['id'] for s in mine] == [session['id']]


# ---- CRUD ----

def test_tasks_are_seeded(client, seeded):
    tasks = client.get('/api/tasks').get_json()
    assert len(tasks) == 4
    assert 'solution' not in tasks[0]


def test_seed_tasks_upserts_by_title(seeded):
    from courtroom.seed import seed_tasks
    assert seed_tasks() == (0, 4)


def test_users_crud(client):
    res = client.post('/api/users', json={'email': 'dev@example.com', 'name': 'Dev'})
    assert res.status_code == 201
    assert client.post('/api/users', json={'email': 'dev@example.com'}).status_code == 400
    assert client.post('/api/users', json={}).status_code == 400
    users = client.get('/api/users').get_json()
    assert [u['email'] for u in users] == ['dev@example.com']


def test_create_session_builds_pending_tasks(client, seeded):
    res = client.post('/api/sessions', json={})
    assert res.status_code == 201
    session = res.get_json()
    assert session['phase'] == 'PLAYING'
    assert len(session['session_tasks']) == 4
    assert {st['status'] for st in session['session_tasks']} == {'pending'}


def test_create_session_unknown_user(client):
    assert client.post('/api/sessions', json={'user_id': 999}).status_code == 404


def test_update_session(client, seeded):
    session_id = client.post('/api/sessions', json={}).get_json()['id']
    res = client.put(f'/api/sessions/{session_id}', json={'score': 5, 'phase': 'ENDED', 'bogus': 1})
    assert res.status_code == 200
    data = res.get_json()
    assert data['score'] == 5
    assert data['phase'] == 'ENDED'
    assert client.get('/api/sessions/999').status_code == 404


def test_session_task_lifecycle(client, seeded):
    session = client.post('/api/sessions', json={}).get_json()
    st_id = session['session_tasks'][0]['id']

    res = client.put(f'/api/session-tasks/{st_id}', json={'status': 'done'})
    assert res.status_code == 400
    res = client.put(f'/api/session-tasks/{st_id}', json={'status': 'completed', 'output': 'x'})
    assert res.get_json()['status'] == 'completed'

    res = client.post(f'/api/session-tasks/{st_id}/save', json={'output': 'draft'})
    assert res.get_json()['output'] == 'draft'
    assert client.get(f'/api/session-tasks/{st_id}').get_json()['output'] == 'draft'


def test_create_session_task_validation(client, seeded):
    session_id = client.post('/api/sessions', json={}).get_json()['id']
    assert client.post('/api/session-tasks', json={'session_id': session_id}).status_code == 400
    res = client.post('/api/session-tasks', json={'session_id': session_id, 'task_id': 1})
    assert res.status_code == 201
    assert res.get_json()['status'] == 'completed'
    assert client.post('/api/session-tasks', json={'session_id': session_id, 'task_id': 99}).status_code == 404


def test_show_solution_costs_penalty(client, seeded):
    session = client.post('/api/sessions', json={}).get_json()
    st_id = session['session_tasks'][0]['id']
    res = client.post(f'/api/session-tasks/{st_id}/show-solution')
    data = res.get_json()
    assert data['penalty'] == 10
    assert data['session_task']['status'] == 'failed'
    assert 'alt="User profile picture"' in data['solution']
    assert client.get(f"/api/sessions/{session['id']}").get_json()['penalties'] == 10


def test_messages(client, seeded):
    session_id = client.post('/api/sessions', json={}).get_json()['id']
    assert client.post('/api/messages', json={'sender': 'Boss'}).status_code == 400
    client.post('/api/messages', json={'session_id': session_id, 'sender': 'Boss', 'content': 'first'})
    client.post('/api/messages', json={'session_id': session_id, 'sender': 'Family', 'content': 'second'})
    client.post('/api/messages', json={'sender': 'Agile', 'content': 'elsewhere'})
    scoped = client.get(f'/api/messages?session_id={session_id}').get_json()
    assert [m['content'] for m in scoped] == ['second', 'first']
    assert len(client.get('/api/messages').get_json()) == 3


def test_verdicts(client, seeded):
    session_id = client.post('/api/sessions', json={}).get_json()['id']
    assert client.post('/api/verdicts', json={'session_id': session_id}).status_code == 400
    res = client.post('/api/verdicts', json={'session_id': session_id, 'violation': 'Tort', 'penalty': 5})
    assert res.status_code == 201
    assert client.get('/api/verdicts').get_json()[0]['violation'] == 'Tort'


def test_results(client):
    assert client.post('/api/results', json={}).status_code == 400
    res = client.post('/api/results', json={
        'difficulty': 'beginner', 'time_taken': 42, 'completed_tasks': ['DisabilityAct'],
        'total_tasks': 1, 'penalties': [], 'final_code': '<img alt="x">', 'outcome': 'win',
    })
    assert res.status_code == 201
    results = client.get('/api/results').get_json()
    assert results[0]['id'] == res.get_json()['id']
    assert results[0]['completed_tasks'] == ['DisabilityAct']


# ---- Play ----

def test_play_start_and_snapshot(client):
    data = _start(client, 300)
    assert data['game_state'] == 'playing'
    assert data['difficulty'] == 'intermediate'
    assert data['time_remaining'] == 300
    assert data['required_tasks'] == 3

    snap = client.get(f"/api/play/{data['session_id']}").get_json()
    assert snap['session_id'] == data['session_id']
    session = client.get(f"/api/sessions/{data['session_id']}").get_json()
    assert session['difficulty'] == 'intermediate'
    assert session['duration'] == 300


def test_play_rejects_unknown_duration(client):
    res = client.post('/api/play/start', json={'duration': 200})
    assert res.status_code == 400
    assert 'error' in res.get_json()


def test_play_options(client):
    options = client.get('/api/play/options').get_json()
    assert [o['time'] for o in options] == [120, 300, 600]


def test_play_unknown_game(client):
    assert client.get('/api/play/999').status_code == 404
    assert client.post('/api/play/999/tick').status_code == 404


def test_play_tick_validation(client):
    session_id = _start(client)['session_id']
    assert client.post(f'/api/play/{session_id}/tick', json={'seconds': 'x'}).status_code == 400
    assert client.post(f'/api/play/{session_id}/tick', json={'seconds': 0}).status_code == 400
    assert client.post(f'/api/play/{session_id}/tick', json={'seconds': 500}).status_code == 400


def test_play_penalty_records_verdict_and_result(client):
    session_id = _start(client)['session_id']
    res = client.post(f'/api/play/{session_id}/tick', json={'seconds': 90})
    data = res.get_json()
    assert data['game_state'] == 'game_over'
    assert data['outcome'] == 'penalty'
    assert data['penalties'] == ['DisabilityAct']
    assert data['result_id'] is not None

    verdicts = client.get('/api/verdicts').get_json()
    assert verdicts[0]['violation'] == 'DisabilityAct'
    session = client.get(f'/api/sessions/{session_id}').get_json()
    assert session['phase'] == 'ENDED'
    assert session['penalties'] == 1
    results = client.get('/api/results').get_json()
    assert results[0]['outcome'] == 'penalty'
    messages = client.get(f'/api/messages?session_id={session_id}').get_json()
    assert {m['sender'] for m in messages} >= {'Ethical/Legal'}

    # a finished game cannot be paused
    assert client.post(f'/api/play/{session_id}/pause').status_code == 409


def test_play_fix_flow_and_timeout_win(client):
    session_id = _start(client)['session_id']
    assert client.post(f'/api/play/{session_id}/fix', json={'task': 'Nope'}).status_code == 400
    data = client.post(f'/api/play/{session_id}/fix', json={'task': 'DisabilityAct'}).get_json()
    assert data['show_code_editor']
    fixed = data['code'].replace('<img id="img1"', '<img id="img1" alt="Court banner"')
    assert client.put(f'/api/play/{session_id}/code', json={'code': 5}).status_code == 400
    client.put(f'/api/play/{session_id}/code', json={'code': fixed})
    data = client.post(f'/api/play/{session_id}/complete').get_json()
    assert data['validation_result']['is_correct']
    assert data['completed_tasks'] == ['DisabilityAct']
    data = client.post(f'/api/play/{session_id}/finish').get_json()
    assert not data['show_code_editor']

    data = client.post(f'/api/play/{session_id}/tick', json={'seconds': 120}).get_json()
    assert data['outcome'] == 'win'
    assert data['show_win_popup']
    assert data['game_state'] == 'playing'


def test_play_submit_refusal_and_final_code(client):
    session_id = _start(client, 300)['session_id']
    client.post(f'/api/play/{session_id}/fix', json={'task': 'DisabilityAct'})
    res = client.post(f'/api/play/{session_id}/submit')
    assert res.status_code == 409
    body = res.get_json()
    assert len(body['remaining']) == 3
    assert body['show_fix_first_popup']
    client.post(f'/api/play/{session_id}/fix-first/close')

    res = client.post(f'/api/play/{session_id}/final-code')
    body = res.get_json()
    assert 'INCOMPLETE' in body['generated_code']
    assert body['outcome'] == 'incomplete'
    assert body['game_state'] == 'game_over'


def test_play_solution_adds_penalty(client):
    session_id = _start(client)['session_id']
    assert client.post(f'/api/play/{session_id}/solution').status_code == 409
    client.post(f'/api/play/{session_id}/fix', json={'task': 'DisabilityAct'})
    data = client.post(f'/api/play/{session_id}/solution').get_json()
    assert data['show_solution']
    assert data['penalties'] == ['Solution Used']


def test_play_popups_and_history(client):
    session_id = _start(client)['session_id']
    data = client.post(f'/api/play/{session_id}/tick', json={'seconds': 30}).get_json()
    assert data['current_popup']['penalty_key'] == 'DisabilityAct'
    assert data['unread_count'] == 1
    data = client.post(f'/api/play/{session_id}/popup/close').get_json()
    assert data['current_popup'] is None
    data = client.post(f'/api/play/{session_id}/history/read').get_json()
    assert data['unread_count'] == 0


def test_play_pause_reset_and_difficulty(client):
    session_id = _start(client)['session_id']
    data = client.post(f'/api/play/{session_id}/pause').get_json()
    assert data['is_running'] is False
    data = client.post(f'/api/play/{session_id}/tick', json={'seconds': 5}).get_json()
    assert data['time_remaining'] == 120

    data = client.post(f'/api/play/{session_id}/reset').get_json()
    assert data['game_state'] == 'welcome'
    data = client.post(f'/api/play/{session_id}/difficulty', json={'duration': 600}).get_json()
    assert data['difficulty'] == 'advanced'
    assert data['time_remaining'] == 600
    assert client.post(f'/api/play/{session_id}/difficulty', json={'duration': 7}).status_code == 400
    assert client.get(f'/api/sessions/{session_id}').get_json()['difficulty'] == 'advanced'

    data = client.post(f'/api/play/{session_id}/start').get_json()
    assert data['game_state'] == 'playing'
    assert client.post(f'/api/play/{session_id}/start').status_code == 409


def test_play_explicit_save(client):
    session_id = _start(client)['session_id']
    res = client.post(f'/api/play/{session_id}/save')
    assert res.status_code == 201
    result_id = res.get_json()['id']
    results = client.get('/api/results').get_json()
    assert results[0]['id'] == result_id
    assert results[0]['session_id'] == session_id


def test_play_abandon(client):
    session_id = _start(client)['session_id']
    assert client.delete(f'/api/play/{session_id}').status_code == 200
    assert client.get(f'/api/play/{session_id}').status_code == 404
    assert client.get(f'/api/sessions/{session_id}').get_json()['phase'] == 'ENDED'
    assert client.delete(f'/api/play/{session_id}').status_code == 404


def test_play_fix_rejects_task_outside_tier(client):
    session_id = _start(client)['session_id']
    res = client.post(f'/api/play/{session_id}/fix', json={'task': 'SecurityNegligence'})
    assert res.status_code == 400
    assert client.get(f'/api/play/{session_id}').get_json()['active_task'] is None


def test_play_complete_after_penalty_is_rejected(client):
    session_id = _start(client)['session_id']
    client.post(f'/api/play/{session_id}/fix', json={'task': 'DisabilityAct'})
    client.post(f'/api/play/{session_id}/tick', json={'seconds': 90})
    assert client.post(f'/api/play/{session_id}/complete').status_code == 409
    assert client.get(f'/api/play/{session_id}').get_json()['penalties'] == ['DisabilityAct']


def test_play_restart_reopens_session_row(client):
    session_id = _start(client)['session_id']
    client.post(f'/api/play/{session_id}/tick', json={'seconds': 90})
    assert client.get(f'/api/sessions/{session_id}').get_json()['phase'] == 'ENDED'
    client.post(f'/api/play/{session_id}/reset')
    assert client.post(f'/api/play/{session_id}/start').status_code == 200
    session = client.get(f'/api/sessions/{session_id}').get_json()
    assert session['phase'] == 'PLAYING'
    assert session['end_time'] is None
