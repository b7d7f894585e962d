from courtroom.services.game.messages import (
    CRITICAL, DISTRACTION_KEY, HIGH, LOW, MEDIUM, categorize,
)
from courtroom.services.game.popup_queue import PopupQueue


def _urgent(key, t):
    return categorize('Ethical/Legal', f'URGENT: fix {key}', True, key, t)


def _notice(key, t):
    return categorize('Ethical/Legal', f'Heads up about {key}', True, key, t)


def _distraction(source, t):
    return categorize(source, 'Lunch?', False, DISTRACTION_KEY, t)


def test_priority_and_type_derivation():
    assert _urgent('DisabilityAct', 1).priority == CRITICAL
    assert _urgent('DisabilityAct', 1).message_type == 'urgent'
    assert _notice('DisabilityAct', 1).priority == HIGH
    assert _notice('DisabilityAct', 1).message_type == 'initial'
    assert _distraction('Boss', 1).priority == MEDIUM
    assert _distraction('Family', 1).priority == LOW
    assert _distraction('Agile', 1).message_type == 'distraction'


def test_event_id_is_elapsed_second():
    event = categorize('Boss', 'Status?', False, DISTRACTION_KEY, 42)
    assert event.id == 42
    assert event.game_time == 42
    data = event.to_dict()
    assert data['priority'] == MEDIUM
    assert data['message_type'] == 'distraction'
    assert isinstance(data['timestamp'], str)


def test_first_push_is_displayed():
    q = PopupQueue()
    e = _distraction('Family', 3)
    q.push(e)
    assert q.current is e
    assert len(q) == 1


def test_critical_preferred_and_fifo_within_queue():
    q = PopupQueue()
    shown = _distraction('Family', 1)
    c1 = _urgent('DisabilityAct', 2)
    m1 = _distraction('Boss', 3)
    c2 = _urgent('Bankruptcy', 4)
    for e in (shown, c1, m1, c2):
        q.push(e)

    assert q.current is shown
    assert q.close() is c1
    assert q.close() is c2
    assert q.close() is m1
    assert q.close() is None
    assert q.current is None


def test_non_urgent_critical_events_wait_in_minor_queue():
    q = PopupQueue()
    q.push(_distraction('Agile', 1))
    notice = _notice('DisabilityAct', 2)
    q.push(notice)
    assert list(q.minor) == [notice]
    assert not q.critical


def test_close_with_empty_queues_is_not_an_error():
    q = PopupQueue()
    assert q.close() is None
    assert q.current is None


def test_purge_removes_waiting_and_displayed_events():
    q = PopupQueue()
    shown = _notice('DisabilityAct', 1)
    q.push(shown)
    q.push(_urgent('DisabilityAct', 2))
    keep = _urgent('Bankruptcy', 3)
    q.push(keep)
    q.push(_distraction('Boss', 4))

    q.purge('DisabilityAct')

    assert q.current is keep
    assert not q.critical
    assert [e.source for e in q.minor] == ['Boss']


def test_to_dict_and_clear():
    q = PopupQueue()
    q.push(_distraction('Boss', 1))
    q.push(_urgent('DisabilityAct', 2))
    data = q.to_dict()
    assert data['current_popup']['source'] == 'Boss'
    assert len(data['critical_queue']) == 1
    assert data['minor_queue'] == []
    q.clear()
    assert len(q) == 0
    assert q.to_dict()['current_popup'] is None
