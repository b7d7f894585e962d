"""Live game registry and background timers.

Binds the transport-free game engine to the app: one ``GameSession`` per
``Session`` row, with its timers spawned as Socket.IO background tasks,
its events persisted as ``Message`` rows and broadcast to the session room,
and its final report stored as a ``GameResult``.

In TESTING mode timers are not spawned unless ENABLE_SCHEDULER_IN_TESTS is
set; tests advance games through ``GameSession.tick``.
"""

import random
import threading
from contextlib import nullcontext
from datetime import datetime, timezone
from functools import partial
from typing import Dict, Optional

from flask import current_app, has_app_context
from sqlalchemy.exc import SQLAlchemyError

from courtroom import db, socketio
from courtroom.models import GameResult, Message, Session, Verdict
from courtroom.services.game.messages import DISTRACTION_KEY, categorize
from courtroom.services.game.reporter import ResultReporter
from courtroom.services.game.session import OUTCOME_PENALTY, GameSession
from courtroom.services.game.timers import SessionTimers


CHATTER_SENDERS = ['Boss', 'Family', 'Agile']
CHATTER_MESSAGES = [
    'Where is the report?',
    'Can you pick up groceries?',
    'The sprint is behind schedule!',
    'Did you finish the presentation?',
    'Dinner is ready!',
    'We need to deploy today!',
    'Can you help with homework?',
    'The client is waiting!',
]

CHATTER_TIMER = 'chatter'
SESSION_TIMEOUT_TIMER = 'session-timeout'

_live_games: Dict[int, GameSession] = {}
_session_timers: Dict[int, SessionTimers] = {}
_registry_lock = threading.Lock()


def room_for(session_id: int) -> str:
    return f"session:{session_id}"


def _app_scope(app):
    # An active context for this app is reused, keeping one db session per request
    if has_app_context() and current_app._get_current_object() is app:
        return nullcontext()
    return app.app_context()


def timers_enabled(app) -> bool:
    return not (app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'))


def make_timers(app) -> SessionTimers:
    if timers_enabled(app):
        return SessionTimers(
            spawn=socketio.start_background_task,
            sleep=socketio.sleep,
            heartbeat=float(app.config.get('TIMER_HEARTBEAT_SEC', 0) or 0),
        )

    def _skip(target, *args):
        app.logger.info("[timer-skip] background timers disabled in testing")
        return None

    return SessionTimers(spawn=_skip, sleep=lambda _delay: None)


# ---- Background chatter and the CRUD session timeout ----

def post_chatter(app, session_id: int, game: Optional[GameSession] = None, rng=random) -> Optional[dict]:
    """Persist and broadcast one background message; feed it to the live game if any."""
    sender = rng.choice(CHATTER_SENDERS)
    content = rng.choice(CHATTER_MESSAGES)
    with _app_scope(app):
        try:
            message = Message(session_id=session_id, sender=sender, content=content)
            db.session.add(message)
            db.session.commit()
            payload = message.to_dict()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception(f"[chatter-error] session={session_id}")
            return None
    socketio.emit('newMessage', payload, to=room_for(session_id), namespace='/ws')
    if game is not None:
        game.receive_external(categorize(sender, content, False, DISTRACTION_KEY, game.elapsed))
    return payload


def _start_chatter(app, session_id: int, timers: SessionTimers, game: Optional[GameSession] = None) -> None:
    low = int(app.config.get('CHATTER_MIN_SEC', 20))
    high = int(app.config.get('CHATTER_MAX_SEC', 30))
    period = random.uniform(low, max(low, high))
    timers.every(CHATTER_TIMER, period, partial(post_chatter, app, session_id, game))


def end_session(app, session_id: int) -> None:
    """Mark a CRUD session ENDED, stop its timers and notify the room."""
    stop_session_timers(session_id)
    with _app_scope(app):
        try:
            row = db.session.get(Session, session_id)
            if row and row.phase != 'ENDED':
                row.phase = 'ENDED'
                row.end_time = datetime.now(timezone.utc)
                db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception(f"[session-end-error] session={session_id}")
    app.logger.info(f"[session-ended] session={session_id}")
    socketio.emit('sessionEnded', {'session_id': session_id}, to=room_for(session_id), namespace='/ws')


def start_session_timer(app, session_id: int) -> SessionTimers:
    """Start the server-side timeout and periodic chatter for a CRUD session."""
    timers = make_timers(app)
    with _registry_lock:
        previous = _session_timers.pop(session_id, None)
        _session_timers[session_id] = timers
    if previous is not None:
        previous.cancel_all()
    duration = int(app.config.get('SESSION_DURATION_SEC', 300))
    timers.once(SESSION_TIMEOUT_TIMER, duration, partial(end_session, app, session_id))
    _start_chatter(app, session_id, timers)
    return timers


def stop_session_timers(session_id: int) -> None:
    with _registry_lock:
        timers = _session_timers.pop(session_id, None)
    if timers is not None:
        timers.cancel_all()


# ---- Live games ----

def _save_result(app, session_id: int, report: dict) -> Optional[int]:
    with _app_scope(app):
        try:
            result = GameResult.from_report(report, session_id=session_id)
            db.session.add(result)
            db.session.commit()
            return result.id
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception(f"[result-error] session={session_id}")
            return None


def _persist_event(app, session_id: int, event: dict) -> None:
    with _app_scope(app):
        try:
            db.session.add(Message(session_id=session_id, sender=event['source'], content=event['text']))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception(f"[message-error] session={session_id}")


def _record_terminal(app, session_id: int, game: GameSession, payload: dict) -> None:
    with _app_scope(app):
        verdict = None
        try:
            row = db.session.get(Session, session_id)
            if row:
                row.phase = 'ENDED'
                row.end_time = datetime.now(timezone.utc)
                row.completed = len(game.completed_tasks)
                row.penalties = len(game.penalties)
                row.score = len(game.completed_tasks) - len(game.penalties)
            if payload.get('outcome') == OUTCOME_PENALTY:
                verdict = Verdict(
                    session_id=session_id,
                    violation=payload.get('penalty_key') or 'unknown',
                    penalty=1,
                    reason=payload.get('penalty_screen'),
                )
                db.session.add(verdict)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception(f"[terminal-error] session={session_id}")
            return
        app.logger.info(f"[terminal] session={session_id} outcome={payload.get('outcome')}")
        if row:
            socketio.emit('sessionUpdate', row.to_dict(), to=room_for(session_id), namespace='/ws')
        if verdict is not None:
            socketio.emit('courtroomTransition', {'session_id': session_id, 'verdict': verdict.to_dict()},
                          to=room_for(session_id), namespace='/ws')


def _listener(app, session_id: int, game: GameSession):
    def on_change(kind: str, payload: dict) -> None:
        room = room_for(session_id)
        if kind == 'message':
            _persist_event(app, session_id, payload)
            socketio.emit('popup', payload, to=room, namespace='/ws')
        elif kind == 'external':
            # chatter is stored by post_chatter before it reaches the game
            socketio.emit('popup', payload, to=room, namespace='/ws')
        elif kind == 'terminal':
            _record_terminal(app, session_id, game, payload)
        socketio.emit('state_update', {'session_id': session_id, 'kind': kind}, to=room, namespace='/ws')
    return on_change


def start_live_game(app, session_id: int, duration: int, rng=None) -> GameSession:
    """Create, register and start the game for ``session_id``. Raises ValueError for bad durations."""
    enabled = timers_enabled(app)
    game = GameSession(
        duration=duration,
        rng=rng,
        timers=make_timers(app),
        reporter=ResultReporter(partial(_save_result, app, session_id)),
        tick_interval=float(app.config.get('SESSION_TICK_SEC', 1)) if enabled else None,
        success_delay=float(app.config.get('SUCCESS_MESSAGE_SEC', 2)),
    )
    game.listeners.append(_listener(app, session_id, game))
    with _registry_lock:
        previous = _live_games.pop(session_id, None)
        _live_games[session_id] = game
    if previous is not None:
        previous.teardown()
    game.start()
    _start_chatter(app, session_id, game.timers, game)
    app.logger.info(f"[game-start] session={session_id} duration={duration} tier={game.tier}")
    return game


def get_live_game(session_id: int) -> Optional[GameSession]:
    return _live_games.get(session_id)


def end_live_game(session_id: int) -> bool:
    """Tear down and forget the live game; True if one existed."""
    with _registry_lock:
        game = _live_games.pop(session_id, None)
    if game is None:
        return False
    game.teardown()
    return True


def teardown_all() -> None:
    with _registry_lock:
        games = list(_live_games.values())
        timers = list(_session_timers.values())
        _live_games.clear()
        _session_timers.clear()
    for game in games:
        game.teardown()
    for t in timers:
        t.cancel_all()
