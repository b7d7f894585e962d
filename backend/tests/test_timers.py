from courtroom.services.game.timers import SessionTimers, TimerHandle


class Sleeps:
    def __init__(self):
        self.calls = []

    def __call__(self, delay):
        self.calls.append(delay)


def test_once_fires_a_single_time(spawner):
    calls = []
    sleeps = Sleeps()
    handle = TimerHandle('once', 2, lambda: calls.append(1), spawn=spawner, sleep=sleeps).start()
    assert len(spawner.workers) == 1
    spawner.run_last()
    assert calls == [1]
    assert handle.fired == 1
    assert sleeps.calls == [2]


def test_cancelled_handle_never_fires(spawner):
    calls = []
    handle = TimerHandle('once', 2, lambda: calls.append(1), spawn=spawner, sleep=Sleeps()).start()
    handle.cancel()
    spawner.run_last()
    assert calls == []
    assert handle.fired == 0


def test_cancel_during_sleep_aborts_callback(spawner):
    calls = []
    holder = {}

    def cancelling_sleep(_delay):
        holder['handle'].cancel()

    holder['handle'] = TimerHandle('tick', 1, lambda: calls.append(1), repeat=True,
                                   spawn=spawner, sleep=cancelling_sleep).start()
    spawner.run_last()
    assert calls == []


def test_repeat_runs_until_cancelled(spawner):
    calls = []
    holder = {}

    def callback():
        calls.append(1)
        if len(calls) == 3:
            holder['handle'].cancel()

    holder['handle'] = TimerHandle('tick', 1, callback, repeat=True, spawn=spawner, sleep=Sleeps()).start()
    spawner.run_last()
    assert len(calls) == 3
    assert holder['handle'].fired == 3


def test_callback_errors_are_contained(spawner):
    def boom():
        raise RuntimeError('boom')

    handle = TimerHandle('once', 1, boom, spawn=spawner, sleep=Sleeps()).start()
    spawner.run_last()
    assert handle.fired == 1


def test_heartbeat_splits_the_sleep(spawner):
    sleeps = Sleeps()
    TimerHandle('once', 5, lambda: None, spawn=spawner, sleep=sleeps, heartbeat=2).start()
    spawner.run_last()
    assert sleeps.calls == [2, 2, 1]


def test_session_timers_replace_and_cancel(spawner):
    timers = SessionTimers(spawn=spawner, sleep=Sleeps())
    first = timers.once('editor-close', 2, lambda: None)
    second = timers.once('editor-close', 2, lambda: None)
    assert first.cancelled
    assert not second.cancelled
    assert timers.get('editor-close') is second

    tick = timers.every('tick', 1, lambda: None)
    assert 'tick' in timers
    timers.cancel('tick')
    assert tick.cancelled
    assert 'tick' not in timers

    timers.cancel_all()
    assert second.cancelled
    assert timers.get('editor-close') is None


def test_cancelling_unknown_name_is_a_noop(spawner):
    timers = SessionTimers(spawn=spawner, sleep=Sleeps())
    timers.cancel('missing')
    timers.cancel_all()
