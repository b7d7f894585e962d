"""Session state machine for a single timed play-through.

States: welcome -> playing -> game_over. A win is reported as an outcome
with a win popup while the state stays ``playing``; penalty and timeout
outcomes move to ``game_over``. Reset returns to ``welcome`` from anywhere.

The session owns its timers. The tick timer and the editor auto-close
timer are cancelled on reset; every timer is cancelled on teardown.
"""

import functools
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from . import catalog
from .fix_detector import is_fixed
from .messages import PENALTY_KEY, Event, categorize
from .popup_queue import PopupQueue
from .scheduler import MessageScheduler
from .templates import solution_for, template_for
from .timers import SessionTimers

logger = logging.getLogger(__name__)

WELCOME = 'welcome'
PLAYING = 'playing'
GAME_OVER = 'game_over'

OUTCOME_WIN = 'win'
OUTCOME_TIMEOUT = 'timeout'
OUTCOME_PENALTY = 'penalty'
OUTCOME_INCOMPLETE = 'incomplete'

SUCCESS_MESSAGE = 'Correct! You successfully fixed the issue.'
TIMEOUT_VIOLATION = 'VIOLATION: Code quality standards not met.'
SOLUTION_USED = 'Solution Used'
SAVE_FAILED_NOTICE = 'Results could not be saved. Your game continues.'

TICK_TIMER = 'tick'
EDITOR_CLOSE_TIMER = 'editor-close'


class GameStateError(RuntimeError):
    """Raised for a player action that is not valid in the current state."""


def format_time(total_seconds: int) -> str:
    minutes, seconds = divmod(max(0, int(total_seconds)), 60)
    return f"{minutes:02d}:{seconds:02d}"


def _locked(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


class GameSession:
    def __init__(self, duration: int = 300, rng=None, timers: Optional[SessionTimers] = None,
                 reporter=None, tick_interval: Optional[float] = None, success_delay: float = 2):
        self.lock = threading.RLock()
        self.rng = rng
        self.timers = timers or SessionTimers()
        self.reporter = reporter
        self.tick_interval = tick_interval
        self.success_delay = success_delay
        self.listeners: List[Callable[[str, dict], None]] = []
        self.select_duration(duration)

    # -- derived ---------------------------------------------------------

    @property
    def elapsed(self) -> int:
        return self.selected_duration - self.time_remaining

    @property
    def challenges(self) -> List[catalog.Challenge]:
        return self.scheduler.challenges

    @property
    def required_tasks(self) -> int:
        return catalog.required_tasks(self.tier)

    @property
    def processed_challenges(self):
        return self.scheduler.processed

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None

    @property
    def current_popup(self) -> Optional[Event]:
        return self.popups.current

    # -- lifecycle -------------------------------------------------------

    @_locked
    def select_duration(self, duration: int) -> None:
        """Pick a difficulty by duration; raises ValueError for unknown durations."""
        tier = catalog.tier_for_duration(duration)
        self.selected_duration = int(duration)
        self.tier = tier
        self.scheduler = MessageScheduler(self.selected_duration, rng=self.rng)
        self.popups = PopupQueue()
        self.reset()

    @_locked
    def reset(self) -> None:
        self.timers.cancel(TICK_TIMER)
        self.timers.cancel(EDITOR_CLOSE_TIMER)
        self.game_state = WELCOME
        self.time_remaining = self.selected_duration
        self.is_running = False
        self.penalties: List[str] = []
        self.completed_tasks = set()
        self.scheduler.reset()
        self.popups.clear()
        self.message_history: List[Event] = []
        self.unread_count = 0
        self.penalty_screen: Optional[str] = None
        self.outcome: Optional[str] = None
        self.show_win_popup = False
        self.show_fix_first_popup = False
        self.code = ''
        self.generated_output = ''
        self.active_task: Optional[str] = None
        self.show_code_editor = False
        self.show_solution = False
        self.validation_result: Optional[Dict] = None
        self.notice: Optional[str] = None
        self.result_id = None
        self._notify('reset')

    @_locked
    def start(self) -> None:
        if self.game_state != WELCOME:
            raise GameStateError(f"Cannot start from state {self.game_state}")
        self.game_state = PLAYING
        self.time_remaining = self.selected_duration
        self.is_running = True
        if self.tick_interval:
            self.timers.every(TICK_TIMER, self.tick_interval, self.tick)
        logger.info("[start] tier=%s duration=%s", self.tier, self.selected_duration)
        self._notify('state')

    def teardown(self) -> None:
        self.timers.cancel_all()
        with self.lock:
            self.is_running = False
            self.listeners = []

    @_locked
    def toggle_pause(self) -> bool:
        if self.game_state != PLAYING or self.is_terminal or self.penalty_screen:
            raise GameStateError('Only a running game can be paused')
        self.is_running = not self.is_running
        self._notify('state')
        return self.is_running

    # -- clock -----------------------------------------------------------

    @_locked
    def tick(self) -> None:
        """Advance the clock one second and run scheduling for the new elapsed time."""
        if self.game_state != PLAYING or not self.is_running or self.penalty_screen:
            return
        if self.time_remaining <= 0:
            return
        self.time_remaining -= 1
        elapsed = self.elapsed
        challenge = self.scheduler.evaluate(elapsed, self.code, self)
        if challenge is not None:
            self._apply_penalty(challenge, elapsed)
        elif self.time_remaining == 0:
            self._resolve_timeout()
        self._notify('tick')

    def _deliver(self, event: Event, kind: str) -> None:
        self.message_history.append(event)
        self.unread_count += 1
        self.popups.push(event)
        self._notify(kind, event.to_dict())

    # scheduler sink
    def emit(self, event: Event) -> None:
        self._deliver(event, 'message')

    # scheduler sink
    def resolve(self, penalty_key: str) -> None:
        self.popups.purge(penalty_key)
        self._notify('popup')

    def _apply_penalty(self, challenge: catalog.Challenge, elapsed: int) -> None:
        self.penalties.append(challenge.penalty_key)
        self.penalty_screen = challenge.penalty_message
        self.message_history.append(
            categorize('Court Order', f"PENALTY: {challenge.penalty_message}", True, PENALTY_KEY, elapsed)
        )
        self._end(GAME_OVER, OUTCOME_PENALTY, penalty_key=challenge.penalty_key)

    def _resolve_timeout(self) -> None:
        if len(self.completed_tasks) >= self.required_tasks:
            self.show_win_popup = True
            self._end(PLAYING, OUTCOME_WIN)
        else:
            self.penalty_screen = TIMEOUT_VIOLATION
            self._end(GAME_OVER, OUTCOME_TIMEOUT)

    def _end(self, state: str, outcome: str, **payload) -> None:
        self.timers.cancel(TICK_TIMER)
        self.is_running = False
        self.game_state = state
        self.outcome = outcome
        logger.info("[end] outcome=%s elapsed=%s penalties=%s", outcome, self.elapsed, self.penalties)
        self._notify('terminal', dict(payload, outcome=outcome, penalty_screen=self.penalty_screen))
        self.save_results()

    # -- popups ----------------------------------------------------------

    @_locked
    def close_popup(self) -> Optional[Event]:
        nxt = self.popups.close()
        self._notify('popup')
        return nxt

    @_locked
    def receive_external(self, event: Event) -> None:
        """Accept background chatter from outside the scheduler as a popup."""
        if self.game_state != PLAYING or self.is_terminal:
            return
        self._deliver(event, 'external')

    @_locked
    def mark_history_read(self) -> None:
        self.unread_count = 0

    # -- editor workflow -------------------------------------------------

    def _require_playing(self):
        if self.game_state != PLAYING or self.is_terminal:
            raise GameStateError('The game is not in progress')

    @_locked
    def start_fixing(self, penalty_key: str) -> str:
        self._require_playing()
        if penalty_key not in {c.penalty_key for c in self.challenges}:
            raise ValueError(f"{penalty_key!r} is not a challenge of the {self.tier} tier")
        self.active_task = penalty_key
        self.show_code_editor = True
        self.show_solution = False
        self.validation_result = None
        if not self.code:
            self.code = template_for(self.tier)
        self.popups.purge(penalty_key)
        if self.popups.current is not None:
            self.popups.close()
        self._notify('editor')
        return self.code

    @_locked
    def edit_code(self, code: str) -> None:
        self._require_playing()
        self.code = code or ''
        self._notify('editor')

    @_locked
    def complete_task(self) -> Dict:
        self._require_playing()
        if not self.active_task:
            raise GameStateError('No task is being fixed')
        task = self.active_task
        self.completed_tasks.add(task)
        self.penalties = [p for p in self.penalties if p != task]
        self.validation_result = {'is_correct': True, 'message': SUCCESS_MESSAGE}
        self.timers.once(EDITOR_CLOSE_TIMER, self.success_delay, self._auto_close_editor)
        self._notify('editor')
        return self.validation_result

    def _auto_close_editor(self) -> None:
        self.finish_fixing()

    @_locked
    def show_solution_code(self) -> str:
        self._require_playing()
        if not self.active_task:
            raise GameStateError('No task is being fixed')
        self.show_solution = True
        self.code = solution_for(self.active_task, self.tier)
        self.penalties.append(SOLUTION_USED)
        self._notify('editor')
        return self.code

    @_locked
    def finish_fixing(self) -> None:
        self.timers.cancel(EDITOR_CLOSE_TIMER)
        self.active_task = None
        self.show_code_editor = False
        self.show_solution = False
        self.validation_result = None
        self._notify('editor')

    # -- win validation --------------------------------------------------

    def challenge_status(self) -> List[Dict]:
        required = self.challenges[:self.required_tasks]
        return [
            {
                'id': c.id,
                'message': c.initial_message,
                'is_fixed': is_fixed(c.penalty_key, self.code),
                'penalty_key': c.penalty_key,
            }
            for c in required
        ]

    def validate_win_conditions(self):
        remaining = [s['message'] for s in self.challenge_status() if not s['is_fixed']]
        return not remaining, remaining

    @_locked
    def submit(self) -> List[str]:
        """Try to win by submission; returns the unresolved messages, empty on a win."""
        self._require_playing()
        can_win, remaining = self.validate_win_conditions()
        if not can_win:
            self.show_fix_first_popup = True
            self._notify('state')
            return remaining
        self.show_win_popup = True
        self._end(PLAYING, OUTCOME_WIN)
        return []

    @_locked
    def dismiss_fix_first(self) -> None:
        self.show_fix_first_popup = False

    @_locked
    def generate_final_code(self) -> str:
        status = 'SUCCESS' if self.outcome == OUTCOME_WIN else 'INCOMPLETE'
        self.generated_output = render_final_html(self.code, status)
        if self.game_state == PLAYING and not self.is_terminal:
            self._end(GAME_OVER, OUTCOME_INCOMPLETE)
        return self.generated_output

    # -- reporting -------------------------------------------------------

    def build_report(self) -> Dict:
        return {
            'difficulty': self.tier,
            'time_taken': self.elapsed,
            'completed_tasks': sorted(self.completed_tasks),
            'total_tasks': self.required_tasks,
            'penalties': list(self.penalties),
            'final_code': self.code,
            'generated_code': self.generated_output,
            'game_state': self.game_state,
            'outcome': self.outcome,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }

    @_locked
    def save_results(self):
        """Hand the report to the reporter. Failure leaves a notice and never raises."""
        if self.reporter is None:
            return None
        result_id = self.reporter.report(self.build_report())
        if result_id is None:
            self.notice = SAVE_FAILED_NOTICE
        else:
            self.result_id = result_id
            self.notice = None
        self._notify('result', {'result_id': result_id})
        return result_id

    # -- observers -------------------------------------------------------

    def _notify(self, kind: str, payload: Optional[dict] = None) -> None:
        for listener in list(getattr(self, 'listeners', [])):
            try:
                listener(kind, payload or {})
            except Exception:
                logger.exception("[listener-error] kind=%s", kind)

    def to_dict(self) -> Dict:
        data = {
            'game_state': self.game_state,
            'difficulty': self.tier,
            'selected_duration': self.selected_duration,
            'time_remaining': self.time_remaining,
            'time_display': format_time(self.time_remaining),
            'is_running': self.is_running,
            'outcome': self.outcome,
            'penalties': list(self.penalties),
            'penalty_screen': self.penalty_screen,
            'completed_tasks': sorted(self.completed_tasks),
            'required_tasks': self.required_tasks,
            'processed_challenges': sorted(f"{cid}:{stage}" for cid, stage in self.processed_challenges),
            'message_history': [e.to_dict() for e in self.message_history],
            'unread_count': self.unread_count,
            'show_win_popup': self.show_win_popup,
            'show_fix_first_popup': self.show_fix_first_popup,
            'active_task': self.active_task,
            'show_code_editor': self.show_code_editor,
            'show_solution': self.show_solution,
            'validation_result': self.validation_result,
            'code': self.code,
            'notice': self.notice,
            'result_id': self.result_id,
        }
        data.update(self.popups.to_dict())
        return data


def render_final_html(code: str, status: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Court Room Generated Code - {status}</title>
</head>
<body>
    {code}

    <script>
        const altFixStatus = document.body.innerHTML.includes('alt="');
        const emailValidationStatus = document.body.innerHTML.includes('@') && document.body.innerHTML.includes('.');
        const securityFixStatus = document.body.innerHTML.includes('secure database');

        console.log('=== Court Room Challenge Results ===');
        console.log('Game Completion Status:', '{status}');
        console.log('Alt Tag Accessibility Fix:', altFixStatus ? 'FIXED' : 'MISSING');
        console.log('Email Validation Fix:', emailValidationStatus ? 'FIXED' : 'MISSING');
        console.log('Security Database Fix:', securityFixStatus ? 'FIXED' : 'MISSING');
        console.log('All Issues Resolved:', {'true' if status == 'SUCCESS' else 'false'});
    </script>
</body>
</html>"""
