from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user
from courtroom import db
from courtroom.models import Session, User
from courtroom.services import runner
from courtroom.services.game import catalog
from courtroom.services.game.session import GameStateError


play = Blueprint('play', __name__)


def _game_or_404(session_id):
    game = runner.get_live_game(session_id)
    if game is None:
        return None, (jsonify({'error': 'No live game for this session'}), 404)
    return game, None


def _snapshot(session_id, game, status=200):
    payload = game.to_dict()
    payload['session_id'] = session_id
    return jsonify(payload), status


@play.errorhandler(GameStateError)
def _conflict(exc):
    return jsonify({'error': str(exc)}), 409


@play.errorhandler(ValueError)
def _bad_request(exc):
    return jsonify({'error': str(exc)}), 400


@play.route('/options', methods=['GET'])
def time_options():
    return jsonify(catalog.TIME_OPTIONS)


@play.route('/start', methods=['POST'])
def start():
    """Creates a session row and starts a live game for the chosen duration."""
    data = request.get_json(silent=True) or {}
    duration = data.get('duration', 300)
    tier = catalog.tier_for_duration(duration)

    user_id = current_user.id if current_user.is_authenticated else data.get('user_id')
    if user_id is not None and db.session.get(User, user_id) is None:
        return jsonify({'error': 'User not found'}), 404

    session = Session(user_id=user_id, difficulty=tier, duration=int(duration), phase='PLAYING')
    db.session.add(session)
    db.session.commit()

    game = runner.start_live_game(current_app._get_current_object(), session.id, int(duration))
    return _snapshot(session.id, game, 201)


@play.route('/<int:session_id>', methods=['GET'])
def state(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/start', methods=['POST'])
def begin(session_id):
    """Starts a live game again from the welcome screen after a reset."""
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.start()
    row = db.session.get(Session, session_id)
    if row:
        row.phase = 'PLAYING'
        row.end_time = None
        db.session.commit()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/tick', methods=['POST'])
def tick(session_id):
    """Manually advances the game clock; used when background timers are off."""
    game, error = _game_or_404(session_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    try:
        seconds = int(data.get('seconds', 1))
    except (TypeError, ValueError):
        return jsonify({'error': 'seconds must be an integer'}), 400
    if not 1 <= seconds <= game.selected_duration:
        return jsonify({'error': f'seconds must be between 1 and {game.selected_duration}'}), 400
    for _ in range(seconds):
        game.tick()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/pause', methods=['POST'])
def pause(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.toggle_pause()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/popup/close', methods=['POST'])
def close_popup(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.close_popup()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/history/read', methods=['POST'])
def read_history(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.mark_history_read()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/fix', methods=['POST'])
def start_fixing(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    task = data.get('task')
    if task not in catalog.PENALTY_KEYS:
        return jsonify({'error': 'A valid task key is required'}), 400
    game.start_fixing(task)
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/code', methods=['PUT'])
def edit_code(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    code = data.get('code')
    if not isinstance(code, str):
        return jsonify({'error': 'code must be a string'}), 400
    game.edit_code(code)
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/complete', methods=['POST'])
def complete_task(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.complete_task()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/solution', methods=['POST'])
def show_solution(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.show_solution_code()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/finish', methods=['POST'])
def finish_fixing(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.finish_fixing()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/submit', methods=['POST'])
def submit(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    remaining = game.submit()
    if remaining:
        payload = game.to_dict()
        payload.update({'session_id': session_id, 'error': 'Fix the remaining issues first', 'remaining': remaining})
        return jsonify(payload), 409
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/fix-first/close', methods=['POST'])
def close_fix_first(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.dismiss_fix_first()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/final-code', methods=['POST'])
def final_code(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    html = game.generate_final_code()
    payload = game.to_dict()
    payload.update({'session_id': session_id, 'generated_code': html})
    return jsonify(payload)


@play.route('/<int:session_id>/save', methods=['POST'])
def save_results(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    result_id = game.save_results()
    if result_id is None:
        return jsonify({'error': game.notice or 'Results could not be saved'}), 503
    return jsonify({'id': result_id}), 201


@play.route('/<int:session_id>/reset', methods=['POST'])
def reset(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    game.reset()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>/difficulty', methods=['POST'])
def change_difficulty(session_id):
    game, error = _game_or_404(session_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    game.select_duration(data.get('duration'))
    row = db.session.get(Session, session_id)
    if row:
        row.duration = game.selected_duration
        row.difficulty = game.tier
        db.session.commit()
    return _snapshot(session_id, game)


@play.route('/<int:session_id>', methods=['DELETE'])
def abandon(session_id):
    if not runner.end_live_game(session_id):
        return jsonify({'error': 'No live game for this session'}), 404
    runner.end_session(current_app._get_current_object(), session_id)
    return jsonify({'message': 'Game abandoned'})
