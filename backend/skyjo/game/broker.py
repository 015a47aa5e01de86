"""Wait for one named action from one of several players, exactly once.

``ActionBroker.wait`` subscribes a listener for every (eligible actor, action
name) pair and hands back a ``concurrent.futures.Future``. The first action
that parses and is accepted by its handler wins: the handler runs, every
listener of that wait is released in one batch, then the future resolves with
an ``ActionResult``. Listener invocations for a broker are serialised by a
re-entrant lock so that near-simultaneous actions cannot both win. The lock is
re-entrant because resolving a future resumes the session synchronously and
the session immediately opens its next wait on the same broker.
"""

import functools
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Sequence, Tuple

from ..channels import ChannelHub, Subscription
from .actions import Action, parse_action
from .errors import MalformedActionPayload

logger = logging.getLogger(__name__)

ActionHandler = Callable[[str, Action], None]
ExpectedAction = Tuple[str, ActionHandler]


class ActionResult(NamedTuple):
    actor_id: str
    action: Action


class _Wait:
    __slots__ = ('future', 'subscriptions', 'settled')

    def __init__(self):
        self.future: Future = Future()
        self.subscriptions: Dict[Tuple[str, str], Subscription] = {}
        self.settled = False


class ActionBroker:
    def __init__(self, hub: ChannelHub, session_id: str):
        self._hub = hub
        self.session_id = session_id
        self.lock = threading.RLock()
        self._waits: List[_Wait] = []

    def wait(self, actions: Sequence[ExpectedAction], eligible_actor_ids: Iterable[str]) -> Future:
        pending = _Wait()
        names = [name for name, _ in actions]
        with self.lock:
            for actor_id in eligible_actor_ids:
                if not self._hub.is_connected(actor_id):
                    # Nothing else will wake this wait if every eligible actor is gone;
                    # the registry ends the session on disconnect.
                    logger.warning(f"[broker-skip] session={self.session_id} actor={actor_id} not reachable")
                    continue
                for name, handler in actions:
                    listener = functools.partial(self._on_action, pending, name, handler, actor_id)
                    pending.subscriptions[(actor_id, name)] = self._hub.subscribe(actor_id, name, listener)
            self._waits.append(pending)
        logger.debug(f"[broker-wait] session={self.session_id} actions={names} listeners={len(pending.subscriptions)}")
        return pending.future

    def dispatch(self, actor_id: str, action: str, payload: Any = None) -> int:
        """Fire an action at the actor's listeners under the broker lock.

        Listeners are looked up only once any running handler has finished,
        so an action racing a settled wait reaches the wait opened after it.
        """
        with self.lock:
            return self._hub.fire(actor_id, action, payload)

    def _on_action(self, pending: _Wait, name: str, handler: ActionHandler, actor_id: str, payload: Any) -> None:
        with self.lock:
            if pending.settled:
                return
            # claimed while the handler runs, so a re-entrant action is turned away
            pending.settled = True
            logger.info(f"[action] session={self.session_id} actor={actor_id} action={name}")
            try:
                action = parse_action(name, payload)
                handler(actor_id, action)
            except MalformedActionPayload as exc:
                pending.settled = False
                logger.warning(f"[action-rejected] session={self.session_id} actor={actor_id} {exc}")
                return
            except Exception as exc:
                self._settle(pending)
                pending.future.set_exception(exc)
                return
            self._settle(pending)
            pending.future.set_result(ActionResult(actor_id, action))

    def _settle(self, pending: _Wait) -> None:
        pending.settled = True
        for subscription in pending.subscriptions.values():
            self._hub.unsubscribe(subscription)
        pending.subscriptions.clear()
        if pending in self._waits:
            self._waits.remove(pending)

    def cancel(self) -> None:
        """Release every open wait and cancel its future."""
        with self.lock:
            for pending in list(self._waits):
                self._settle(pending)
                pending.future.cancel()

    def pending_listener_count(self) -> int:
        with self.lock:
            return sum(len(pending.subscriptions) for pending in self._waits)
