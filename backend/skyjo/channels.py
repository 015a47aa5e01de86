"""Socket membership, per-actor action subscriptions and room delivery.

The game engine talks to connected players only through a ``ChannelHub``:
who is in a session, whether a socket is still reachable, one-off listeners
for a named action from one socket, and broadcast/unicast delivery. Delivery
goes through ``socketio.emit`` once the hub is bound to an app.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

ActionListener = Callable[[Any], None]
Emitter = Callable[..., Any]


@dataclass(eq=False)
class Subscription:
    actor_id: str
    action: str
    listener: ActionListener


def _drop_emit(*args, **kwargs) -> None:
    return None


class ChannelHub:
    def __init__(self, emit: Optional[Emitter] = None, namespace: str = '/ws'):
        self._emit: Emitter = emit or _drop_emit
        self.namespace = namespace
        self._lock = threading.Lock()
        self._sid_to_ctx: Dict[str, Dict[str, Any]] = {}
        # session id -> actor ids in join order (dict used as an ordered set)
        self._members: Dict[str, Dict[str, None]] = {}
        self._subscriptions: Dict[Tuple[str, str], List[Subscription]] = {}

    def init_app(self, app, socketio) -> None:
        self._emit = socketio.emit
        self.namespace = app.config.get('SOCKETIO_NAMESPACE', '/ws')
        with self._lock:
            self._sid_to_ctx.clear()
            self._members.clear()
            self._subscriptions.clear()

    @staticmethod
    def room(session_id: str) -> str:
        return f"session:{session_id}"

    # ---- membership ----

    def connect(self, actor_id: str) -> None:
        with self._lock:
            self._sid_to_ctx.setdefault(actor_id, {'session_id': None, 'name': None})

    def join(self, actor_id: str, session_id: str, name: Optional[str] = None) -> Optional[str]:
        """Add the actor to a session. Returns the session it left, if any."""
        with self._lock:
            ctx = self._sid_to_ctx.setdefault(actor_id, {'session_id': None, 'name': None})
            previous = ctx['session_id']
            if previous and previous != session_id:
                self._discard_member(previous, actor_id)
            ctx['session_id'] = session_id
            if name:
                ctx['name'] = name
            self._members.setdefault(session_id, {})[actor_id] = None
        return previous if previous != session_id else None

    def leave(self, actor_id: str, session_id: str) -> bool:
        with self._lock:
            ctx = self._sid_to_ctx.get(actor_id)
            if not ctx or ctx['session_id'] != session_id:
                return False
            ctx['session_id'] = None
            self._discard_member(session_id, actor_id)
        return True

    def disconnect(self, actor_id: str) -> Optional[str]:
        """Forget the actor entirely. Returns the session it was in."""
        with self._lock:
            ctx = self._sid_to_ctx.pop(actor_id, None)
            for key in [key for key in self._subscriptions if key[0] == actor_id]:
                del self._subscriptions[key]
            if not ctx or not ctx['session_id']:
                return None
            self._discard_member(ctx['session_id'], actor_id)
            return ctx['session_id']

    def _discard_member(self, session_id: str, actor_id: str) -> None:
        members = self._members.get(session_id)
        if members is None:
            return
        members.pop(actor_id, None)
        if not members:
            del self._members[session_id]

    def members(self, session_id: str) -> List[str]:
        with self._lock:
            return list(self._members.get(session_id, {}))

    def is_connected(self, actor_id: str) -> bool:
        with self._lock:
            return actor_id in self._sid_to_ctx

    def session_of(self, actor_id: str) -> Optional[str]:
        with self._lock:
            ctx = self._sid_to_ctx.get(actor_id)
            return ctx['session_id'] if ctx else None

    def name_of(self, actor_id: str) -> Optional[str]:
        with self._lock:
            ctx = self._sid_to_ctx.get(actor_id)
            return ctx['name'] if ctx else None

    # ---- action subscriptions ----

    def subscribe(self, actor_id: str, action: str, listener: ActionListener) -> Subscription:
        subscription = Subscription(actor_id, action, listener)
        with self._lock:
            self._subscriptions.setdefault((actor_id, action), []).append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        key = (subscription.actor_id, subscription.action)
        with self._lock:
            listeners = self._subscriptions.get(key)
            if not listeners:
                return
            try:
                listeners.remove(subscription)
            except ValueError:
                return
            if not listeners:
                del self._subscriptions[key]

    def fire(self, actor_id: str, action: str, payload: Any = None) -> int:
        """Deliver an action to the actor's current listeners.

        Returns how many listeners were invoked.
        """
        with self._lock:
            listeners = list(self._subscriptions.get((actor_id, action), ()))
        for subscription in listeners:
            subscription.listener(payload)
        return len(listeners)

    def listener_count(self) -> int:
        with self._lock:
            return sum(len(listeners) for listeners in self._subscriptions.values())

    # ---- delivery ----

    def broadcast(self, session_id: str, event: str, payload: Any) -> None:
        self._emit(event, payload, to=self.room(session_id), namespace=self.namespace)

    def send(self, actor_id: str, event: str, payload: Any) -> None:
        self._emit(event, payload, to=actor_id, namespace=self.namespace)
