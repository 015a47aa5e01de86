import threading

import pytest

from skyjo.game.actions import ClickCard, DrawFromStack, NextRound
from skyjo.game.broker import ActionBroker, ActionResult
from skyjo.game.errors import EmptyDeck, MalformedActionPayload


@pytest.fixture()
def broker(hub):
    return ActionBroker(hub, 'table')


def test_wait_resolves_with_actor_and_action(hub, broker):
    calls = []
    future = broker.wait([('draw-from-stack', lambda actor, action: calls.append((actor, action)))], ['a', 'b'])
    assert not future.done()
    assert broker.pending_listener_count() == 2

    assert hub.fire('b', 'draw-from-stack') == 1
    assert future.result(timeout=0) == ActionResult('b', DrawFromStack())
    assert calls == [('b', DrawFromStack())]


def test_all_listeners_released_after_resolution(hub, broker):
    broker.wait(
        [('click-card', lambda actor, action: None), ('next-round', lambda actor, action: None)],
        ['a', 'b'],
    )
    assert hub.listener_count() == 4
    hub.fire('a', 'next-round', {})
    assert hub.listener_count() == 0
    assert broker.pending_listener_count() == 0
    # a late action finds nobody listening
    assert hub.fire('b', 'click-card', {'column': 0, 'row': 0}) == 0


def test_only_one_handler_runs_when_a_handler_triggers_another_action(hub, broker):
    calls = []

    def on_draw(actor, action):
        calls.append('draw')
        hub.fire('b', 'next-round')

    future = broker.wait(
        [('draw-from-stack', on_draw), ('next-round', lambda actor, action: calls.append('next'))],
        ['a', 'b'],
    )
    hub.fire('a', 'draw-from-stack')
    assert calls == ['draw']
    assert future.result(timeout=0).actor_id == 'a'


def test_concurrent_actions_resolve_exactly_once(hub, broker):
    calls = []
    lock = threading.Lock()

    def handler(actor, action):
        with lock:
            calls.append(actor)

    future = broker.wait([('draw-from-stack', handler), ('next-round', handler)], ['a', 'b'])
    barrier = threading.Barrier(2)

    def fire(actor, action):
        barrier.wait()
        hub.fire(actor, action)

    threads = [
        threading.Thread(target=fire, args=('a', 'draw-from-stack')),
        threading.Thread(target=fire, args=('b', 'next-round')),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert len(calls) == 1
    assert future.result(timeout=0).actor_id == calls[0]
    assert hub.listener_count() == 0


def test_malformed_payload_keeps_waiting(hub, broker):
    calls = []
    future = broker.wait([('click-card', lambda actor, action: calls.append(action))], ['a'])

    hub.fire('a', 'click-card', {'column': 'left', 'row': 0})
    hub.fire('a', 'click-card', [0, 1])
    hub.fire('a', 'click-card', {'column': 0, 'row': 1, 'extra': True})
    assert not future.done()
    assert calls == []
    assert broker.pending_listener_count() == 1

    hub.fire('a', 'click-card', {'column': 0, 'row': 1})
    assert future.result(timeout=0).action == ClickCard(column=0, row=1)


def test_handler_rejection_keeps_waiting(hub, broker):
    def handler(actor, action):
        if action.column > 3:
            raise MalformedActionPayload('click-card', 'off the grid')

    future = broker.wait([('click-card', handler)], ['a'])
    hub.fire('a', 'click-card', {'column': 9, 'row': 0})
    assert not future.done()
    hub.fire('a', 'click-card', {'column': 2, 'row': 0})
    assert future.done()


def test_ineligible_actor_is_not_heard(hub, broker):
    future = broker.wait([('next-round', lambda actor, action: None)], ['a'])
    assert hub.fire('b', 'next-round') == 0
    assert not future.done()


def test_unreachable_actor_is_skipped(hub, broker):
    broker.wait([('next-round', lambda actor, action: None)], ['a', 'ghost'])
    assert broker.pending_listener_count() == 1


def test_handler_failure_is_set_on_the_future(hub, broker):
    def handler(actor, action):
        raise EmptyDeck()

    future = broker.wait([('draw-from-stack', handler)], ['a'])
    hub.fire('a', 'draw-from-stack')
    assert isinstance(future.exception(timeout=0), EmptyDeck)
    assert hub.listener_count() == 0


def test_cancel_releases_listeners(hub, broker):
    future = broker.wait([('next-round', lambda actor, action: None)], ['a', 'b'])
    broker.cancel()
    assert future.cancelled()
    assert hub.listener_count() == 0
    assert hub.fire('a', 'next-round') == 0


def test_next_round_accepts_missing_payload(hub, broker):
    future = broker.wait([('next-round', lambda actor, action: None)], ['a'])
    hub.fire('a', 'next-round', None)
    assert future.result(timeout=0).action == NextRound()


def test_action_racing_a_running_handler_reaches_the_next_wait(broker):
    ready = []
    entered = threading.Event()
    release = threading.Event()

    def acknowledge(actor, action):
        ready.append(actor)
        if actor == 'a':
            entered.set()
            release.wait(timeout=5)

    def reopen(future):
        waiting = [actor for actor in ('a', 'b') if actor not in ready]
        if waiting:
            broker.wait([('next-round', acknowledge)], waiting).add_done_callback(reopen)

    broker.wait([('next-round', acknowledge)], ['a', 'b']).add_done_callback(reopen)

    first = threading.Thread(target=broker.dispatch, args=('a', 'next-round'))
    first.start()
    assert entered.wait(timeout=5)
    # b acts while a's handler still holds the wait
    second = threading.Thread(target=broker.dispatch, args=('b', 'next-round'))
    second.start()
    second.join(timeout=0.2)
    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert sorted(ready) == ['a', 'b']
    assert broker.pending_listener_count() == 0
