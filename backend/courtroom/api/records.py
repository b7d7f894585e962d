from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user
from courtroom import db, socketio
from courtroom.models import User, Task, Session, SessionTask, Message, Verdict, GameResult
from courtroom.services import runner


records = Blueprint('records', __name__)

SESSION_FIELDS = ('phase', 'score', 'penalties', 'completed', 'ignored')
SESSION_TASK_STATUSES = ('pending', 'completed', 'failed')


def _emit(event, payload, session_id=None):
    if session_id is None:
        socketio.emit(event, payload, namespace='/ws')
    else:
        socketio.emit(event, payload, to=runner.room_for(session_id), namespace='/ws')


# ---- Tasks ----

@records.route('/tasks', methods=['GET'])
def list_tasks():
    return jsonify([t.to_dict() for t in Task.query.order_by(Task.id).all()])


# ---- Users ----

@records.route('/users', methods=['GET'])
def list_users():
    return jsonify([u.to_dict() for u in User.query.order_by(User.id).all()])


@records.route('/users', methods=['POST'])
def create_user():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    if not email:
        return jsonify({'error': 'Email is required'}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400
    user = User(email=email, name=data.get('name'))
    if data.get('password'):
        user.set_password(data['password'])
    db.session.add(user)
    db.session.commit()
    return jsonify(user.to_dict()), 201


# ---- Sessions ----

def _resolve_user_id(data):
    if current_user.is_authenticated:
        return current_user.id
    user_id = data.get('user_id')
    if user_id is None:
        return None
    user = db.session.get(User, user_id)
    return user.id if user else False


@records.route('/sessions', methods=['GET'])
def list_sessions():
    sessions = Session.query.order_by(Session.id).all()
    return jsonify([s.to_dict(include_related=True) for s in sessions])


@records.route('/sessions', methods=['POST'])
def create_session():
    data = request.get_json(silent=True) or {}
    user_id = _resolve_user_id(data)
    if user_id is False:
        return jsonify({'error': 'User not found'}), 404

    session = Session(user_id=user_id)
    db.session.add(session)
    db.session.flush()
    for task in Task.query.order_by(Task.id).all():
        db.session.add(SessionTask(session_id=session.id, task_id=task.id, status='pending'))
    db.session.commit()

    runner.start_session_timer(current_app._get_current_object(), session.id)
    return jsonify(session.to_dict(include_related=True)), 201


@records.route('/sessions/<int:session_id>', methods=['GET'])
def get_session(session_id):
    session = db.get_or_404(Session, session_id)
    return jsonify(session.to_dict(include_related=True))


@records.route('/sessions/<int:session_id>', methods=['PUT'])
def update_session(session_id):
    session = db.get_or_404(Session, session_id)
    data = request.get_json(silent=True) or {}
    for field in SESSION_FIELDS:
        if field in data and data[field] is not None:
            setattr(session, field, data[field])
    db.session.commit()
    if session.phase == 'ENDED':
        runner.stop_session_timers(session.id)
    _emit('sessionUpdate', session.to_dict(), session.id)
    return jsonify(session.to_dict())


# ---- Session tasks ----

@records.route('/session-tasks', methods=['POST'])
def create_session_task():
    data = request.get_json(silent=True) or {}
    session_id = data.get('session_id')
    task_id = data.get('task_id')
    if not all([session_id, task_id]):
        return jsonify({'error': 'Session ID and task ID are required'}), 400
    status = data.get('status') or 'completed'
    if status not in SESSION_TASK_STATUSES:
        return jsonify({'error': f'Invalid status {status}'}), 400
    db.get_or_404(Session, session_id)
    db.get_or_404(Task, task_id)
    session_task = SessionTask(session_id=session_id, task_id=task_id, output=data.get('output'), status=status)
    db.session.add(session_task)
    db.session.commit()
    return jsonify(session_task.to_dict()), 201


@records.route('/session-tasks/<int:session_task_id>', methods=['GET'])
def get_session_task(session_task_id):
    return jsonify(db.get_or_404(SessionTask, session_task_id).to_dict())


@records.route('/session-tasks/<int:session_task_id>', methods=['PUT'])
def update_session_task(session_task_id):
    session_task = db.get_or_404(SessionTask, session_task_id)
    data = request.get_json(silent=True) or {}
    if 'status' in data:
        if data['status'] not in SESSION_TASK_STATUSES:
            return jsonify({'error': f"Invalid status {data['status']}"}), 400
        session_task.status = data['status']
    if 'output' in data:
        session_task.output = data['output']
    if 'penalty' in data:
        session_task.penalty = int(data['penalty'] or 0)
    db.session.commit()
    _emit('sessionTaskUpdate', session_task.to_dict(), session_task.session_id)
    return jsonify(session_task.to_dict())


@records.route('/session-tasks/<int:session_task_id>/save', methods=['POST'])
def save_session_task(session_task_id):
    session_task = db.get_or_404(SessionTask, session_task_id)
    data = request.get_json(silent=True) or {}
    session_task.output = data.get('output')
    db.session.commit()
    return jsonify(session_task.to_dict())


@records.route('/session-tasks/<int:session_task_id>/show-solution', methods=['POST'])
def show_solution(session_task_id):
    session_task = db.get_or_404(SessionTask, session_task_id)
    penalty = int(current_app.config.get('SHOW_SOLUTION_PENALTY', 10))
    session_task.penalty = (session_task.penalty or 0) + penalty
    session_task.status = 'failed'
    session_task.session.penalties = (session_task.session.penalties or 0) + penalty
    db.session.commit()
    current_app.logger.info(f"[show-solution] session_task={session_task.id} penalty={penalty}")
    return jsonify({
        'session_task': session_task.to_dict(),
        'solution': session_task.task.solution,
        'penalty': penalty,
    })


# ---- Messages ----

@records.route('/messages', methods=['GET'])
def list_messages():
    query = Message.query
    session_id = request.args.get('session_id', type=int)
    if session_id is not None:
        query = query.filter_by(session_id=session_id)
    messages = query.order_by(Message.timestamp.desc(), Message.id.desc()).all()
    return jsonify([m.to_dict() for m in messages])


@records.route('/messages', methods=['POST'])
def create_message():
    data = request.get_json(silent=True) or {}
    sender = data.get('sender')
    content = data.get('content')
    if not all([sender, content]):
        return jsonify({'error': 'Sender and content are required'}), 400
    message = Message(session_id=data.get('session_id'), sender=sender, content=content)
    db.session.add(message)
    db.session.commit()
    _emit('newMessage', message.to_dict(), message.session_id)
    return jsonify(message.to_dict()), 201


# ---- Verdicts ----

@records.route('/verdicts', methods=['GET'])
def list_verdicts():
    return jsonify([v.to_dict() for v in Verdict.query.order_by(Verdict.id).all()])


@records.route('/verdicts', methods=['POST'])
def create_verdict():
    data = request.get_json(silent=True) or {}
    session_id = data.get('session_id')
    violation = data.get('violation')
    if not all([session_id, violation]):
        return jsonify({'error': 'Session ID and violation are required'}), 400
    db.get_or_404(Session, session_id)
    verdict = Verdict(
        session_id=session_id,
        task_id=data.get('task_id'),
        violation=violation,
        penalty=int(data.get('penalty') or 0),
        reason=data.get('reason'),
    )
    db.session.add(verdict)
    db.session.commit()
    _emit('courtroomTransition', {'session_id': session_id, 'verdict': verdict.to_dict()}, session_id)
    return jsonify(verdict.to_dict()), 201


# ---- Results ----

@records.route('/results', methods=['GET'])
def list_results():
    results = GameResult.query.order_by(GameResult.created_at.desc(), GameResult.id.desc()).all()
    return jsonify([r.to_dict() for r in results])


@records.route('/results', methods=['POST'])
def create_result():
    data = request.get_json(silent=True) or {}
    if not data:
        return jsonify({'error': 'Result payload is required'}), 400
    result = GameResult.from_report(data, session_id=data.get('session_id'))
    db.session.add(result)
    db.session.commit()
    return jsonify({'id': result.id}), 201
