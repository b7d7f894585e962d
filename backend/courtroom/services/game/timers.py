"""Cancellable timer handles owned by a game session.

A handle runs its callback from a background worker that sleeps between
firings. Cancelling flips a flag the worker checks after every sleep, so a
callback never fires into a session that was reset or torn down.
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


def _thread_spawn(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


class TimerHandle:
    def __init__(self, name: str, delay: float, callback: Callable[[], None], repeat: bool = False,
                 spawn=None, sleep=None, heartbeat: float = 0):
        self.name = name
        self.delay = delay
        self.callback = callback
        self.repeat = repeat
        self.heartbeat = heartbeat
        self._spawn = spawn or _thread_spawn
        self._sleep = sleep or time.sleep
        self.cancelled = False
        self.fired = 0

    def start(self) -> 'TimerHandle':
        logger.info("[timer-set] name=%s delay=%ss repeat=%s", self.name, self.delay, self.repeat)
        self._spawn(self._worker)
        return self

    def cancel(self) -> None:
        self.cancelled = True

    def _wait(self) -> None:
        # heartbeat sleep loop if enabled
        if not self.heartbeat or self.heartbeat <= 0:
            self._sleep(self.delay)
            return
        slept = 0
        while slept < self.delay and not self.cancelled:
            step = min(self.heartbeat, self.delay - slept)
            self._sleep(step)
            slept += step
            logger.info("[timer-heartbeat] name=%s remaining=%ss", self.name, max(0, self.delay - slept))

    def _worker(self) -> None:
        while not self.cancelled:
            self._wait()
            if self.cancelled:
                logger.info("[timer-abort] name=%s cancelled", self.name)
                return
            self.fired += 1
            logger.debug("[timer-fire] name=%s count=%s", self.name, self.fired)
            try:
                self.callback()
            except Exception:
                logger.exception("[timer-error] name=%s", self.name)
            if not self.repeat:
                return


class SessionTimers:
    """Named timer handles; scheduling a name again replaces the old handle."""

    def __init__(self, spawn=None, sleep=None, heartbeat: float = 0):
        self._spawn = spawn
        self._sleep = sleep
        self.heartbeat = heartbeat
        self._handles: Dict[str, TimerHandle] = {}
        self._lock = threading.Lock()

    def every(self, name: str, interval: float, callback: Callable[[], None]) -> TimerHandle:
        return self._start(TimerHandle(name, interval, callback, True, self._spawn, self._sleep, self.heartbeat))

    def once(self, name: str, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._start(TimerHandle(name, delay, callback, False, self._spawn, self._sleep, self.heartbeat))

    def _start(self, handle: TimerHandle) -> TimerHandle:
        with self._lock:
            previous = self._handles.pop(handle.name, None)
            if previous is not None:
                previous.cancel()
            self._handles[handle.name] = handle
        return handle.start()

    def get(self, name: str) -> Optional[TimerHandle]:
        return self._handles.get(name)

    def cancel(self, name: str) -> None:
        with self._lock:
            handle = self._handles.pop(name, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.cancel()

    def __contains__(self, name):
        return name in self._handles
