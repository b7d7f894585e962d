from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from courtroom import socketio
from courtroom.services import runner
from typing import Dict, Any
import time


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    # When the last owner of a session disconnects, tear the live game
    # down after a grace period unless an owner reconnects
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    session_id = ctx.get('session_id')
    if ctx.get('is_session_owner') and session_id is not None:
        _owner_count[session_id] = max(0, _owner_count.get(session_id, 0) - 1)
        app = current_app._get_current_object()
        if app.config.get('TESTING'):
            if _owner_count.get(session_id, 0) == 0:
                _end_session(app, session_id)
            return
        _schedule_end_if_no_owner(app, session_id, float(app.config.get('OWNER_GRACE_SEC', 2.0)))


def _session_id_from(data):
    raw = (data or {}).get('session_id')
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def handle_join_session(data):
    session_id = _session_id_from(data)
    is_session_owner = bool((data or {}).get('is_session_owner'))
    if session_id is None:
        emit('error', {'message': 'session_id is required'})
        return
    room = runner.room_for(session_id)
    join_room(room)
    _sid_to_ctx[_get_sid()] = {'session_id': session_id, 'is_session_owner': is_session_owner}
    if is_session_owner:
        _owner_count[session_id] = _owner_count.get(session_id, 0) + 1
        _cancel_scheduled_end(session_id)
    emit('joined', {'room': room})


def handle_leave_session(data):
    session_id = _session_id_from(data)
    if session_id is None:
        emit('error', {'message': 'session_id is required'})
        return
    room = runner.room_for(session_id)
    leave_room(room)
    emit('left', {'room': room})
    # An owner leaving explicitly abandons the game at once
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('is_session_owner') and ctx.get('session_id') == session_id:
        _end_session(current_app._get_current_object(), session_id)


def handle_ping(data):
    emit('pong', data or {})

# ---- Session owner lifecycle helpers ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_owner_count: Dict[int, int] = {}
_end_deadline: Dict[int, float] = {}

def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]

def _end_session(app, session_id: int) -> None:
    """Abandon the live game and stop the session's background timers."""
    try:
        had_game = runner.end_live_game(session_id)
        runner.end_session(app, session_id)
        app.logger.info(f"[owner-gone] session={session_id} live_game={had_game}")
    finally:
        _owner_count.pop(session_id, None)
        _end_deadline.pop(session_id, None)

def _schedule_end_if_no_owner(app, session_id: int, delay_sec: float = 2.0) -> None:
    if _owner_count.get(session_id, 0) > 0:
        return
    _end_deadline[session_id] = time.time() + delay_sec

    def _runner(sid: int, deadline: float):
        sleep_for = max(0.0, deadline - time.time())
        if sleep_for:
            socketio.sleep(sleep_for)
        if _owner_count.get(sid, 0) == 0 and _end_deadline.get(sid) == deadline:
            _end_session(app, sid)

    socketio.start_background_task(_runner, session_id, _end_deadline[session_id])

def _cancel_scheduled_end(session_id: int) -> None:
    _end_deadline.pop(session_id, None)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_session', handle_join_session, namespace=namespace)
        socketio.on_event('leave_session', handle_leave_session, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
