"""Per-tick message scheduling for one play-through.

Each tick evaluates every challenge of the active tier against the elapsed
time and the current fix status, then considers one distraction. Stage
marks are kept per ``(challenge id, stage)`` so a stage fires at most once.
"""

import bisect
import logging
import random
from typing import List, Optional, Set, Tuple

from .catalog import Challenge, DISTRACTION_MESSAGES, challenges_for_duration, distraction_frequency, tier_for_duration
from .fix_detector import is_fixed
from .messages import DISTRACTION_KEY, Event, categorize

logger = logging.getLogger(__name__)

INITIAL = 'initial'
URGENT = 'urgent'
PENALTY = 'penalty'

# Distractions stay at least this many seconds away from any challenge offset
BUFFER_SEC = 5

LEGAL_SOURCE = 'Ethical/Legal'


def forbidden_windows(challenges: List[Challenge], buffer: int = BUFFER_SEC) -> List[Tuple[int, int]]:
    """Sorted, merged inclusive ranges of seconds too close to a challenge offset."""
    spans = sorted(
        (offset - buffer + 1, offset + buffer - 1)
        for challenge in challenges
        for offset in challenge.offsets()
    )
    merged: List[Tuple[int, int]] = []
    for start, end in spans:
        if merged and start <= merged[-1][1] + 1:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


class MessageScheduler:
    def __init__(self, duration: int, rng=None):
        self.duration = int(duration)
        self.tier = tier_for_duration(self.duration)
        self.challenges = challenges_for_duration(self.duration)
        self.interval, self.max_count = distraction_frequency(self.tier, self.duration)
        self.rng = rng or random.Random()
        self._windows = forbidden_windows(self.challenges)
        self._window_starts = [start for start, _ in self._windows]
        self.processed: Set[Tuple[str, str]] = set()
        self.distraction_count = 0
        self.last_distraction_time = 0

    def reset(self) -> None:
        self.processed = set()
        self.distraction_count = 0
        self.last_distraction_time = 0

    def is_processed(self, challenge: Challenge, stage: str) -> bool:
        return (challenge.id, stage) in self.processed

    def _mark(self, challenge: Challenge, *stages: str) -> None:
        for stage in stages:
            self.processed.add((challenge.id, stage))

    def _window_for(self, second: int) -> Optional[Tuple[int, int]]:
        idx = bisect.bisect_right(self._window_starts, second) - 1
        if idx >= 0 and self._windows[idx][0] <= second <= self._windows[idx][1]:
            return self._windows[idx]
        return None

    def is_safe(self, second: int) -> bool:
        return self._window_for(second) is None

    def next_safe_time(self, second: int) -> int:
        """First second at or after ``second`` clear of every offset, or -1."""
        window = self._window_for(second)
        candidate = second if window is None else window[1] + 1
        return candidate if candidate <= self.duration else -1

    def evaluate(self, elapsed: int, code: str, sink) -> Optional[Challenge]:
        """Run one tick. ``sink`` receives ``emit(event)`` and ``resolve(penalty_key)``.

        Returns the challenge whose penalty stage fired, which ends the tick.
        """
        for challenge in self.challenges:
            fixed = is_fixed(challenge.penalty_key, code)

            if elapsed >= challenge.initial_time and not self.is_processed(challenge, INITIAL):
                sink.emit(categorize(LEGAL_SOURCE, challenge.initial_message, True, challenge.penalty_key, elapsed))
                self._mark(challenge, INITIAL)

            if fixed and self.is_processed(challenge, INITIAL) and not self.is_processed(challenge, URGENT):
                logger.info("[auto-resolve] challenge=%s elapsed=%s", challenge.id, elapsed)
                self._mark(challenge, URGENT, PENALTY)
                sink.resolve(challenge.penalty_key)

            if elapsed >= challenge.urgent_time and not self.is_processed(challenge, URGENT) and not fixed:
                sink.emit(categorize(LEGAL_SOURCE, challenge.urgent_message, True, challenge.penalty_key, elapsed))
                self._mark(challenge, URGENT)

            if elapsed >= challenge.penalty_time and not self.is_processed(challenge, PENALTY) and not fixed:
                logger.info("[penalty] challenge=%s key=%s elapsed=%s", challenge.id, challenge.penalty_key, elapsed)
                self._mark(challenge, PENALTY)
                return challenge

        event = self._maybe_distraction(elapsed)
        if event is not None:
            sink.emit(event)
        return None

    def _maybe_distraction(self, elapsed: int) -> Optional[Event]:
        if elapsed - self.last_distraction_time < self.interval:
            return None
        if self.distraction_count >= self.max_count:
            return None
        if self.next_safe_time(elapsed) != elapsed:
            return None
        choice = self.rng.choice(DISTRACTION_MESSAGES)
        self.distraction_count += 1
        self.last_distraction_time = elapsed
        return categorize(choice['source'], choice['text'], False, DISTRACTION_KEY, elapsed)
