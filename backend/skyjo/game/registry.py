"""Running games, keyed by session id."""

import logging
import random
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..channels import ChannelHub
from .errors import (
    ActorNotFound,
    InsufficientParticipants,
    SessionAlreadyRunning,
    SessionNotFound,
    TooManyParticipants,
)
from .scoring import GAME_END_THRESHOLD
from .session import MIN_PLAYERS, GameSession

logger = logging.getLogger(__name__)

MAX_PLAYERS = 8


class SessionRegistry:
    def __init__(
        self,
        hub: Optional[ChannelHub] = None,
        min_players: int = MIN_PLAYERS,
        max_players: int = MAX_PLAYERS,
        threshold: int = GAME_END_THRESHOLD,
        rng_factory: Optional[Callable[[], random.Random]] = None,
    ):
        self.hub = hub
        self.min_players = min_players
        self.max_players = max_players
        self.threshold = threshold
        self._rng_factory = rng_factory or random.Random
        self._lock = threading.Lock()
        self._sessions: Dict[str, GameSession] = {}

    def init_app(self, app, hub: ChannelHub) -> None:
        self.hub = hub
        self.min_players = int(app.config.get('MIN_PLAYERS', MIN_PLAYERS))
        self.max_players = int(app.config.get('MAX_PLAYERS', MAX_PLAYERS))
        self.threshold = int(app.config.get('GAME_END_THRESHOLD', GAME_END_THRESHOLD))
        seed = app.config.get('SHUFFLE_SEED')
        if seed not in (None, ''):
            self._rng_factory = lambda: random.Random(seed)
        else:
            self._rng_factory = random.Random
        with self._lock:
            self._sessions.clear()

    def create_session(self, session_id: str, actor_ids: Optional[Iterable[str]] = None) -> GameSession:
        """Start a game for the actors of a session (all joined actors by default)."""
        actor_ids = list(actor_ids) if actor_ids is not None else self.hub.members(session_id)
        if len(actor_ids) < self.min_players:
            raise InsufficientParticipants(len(actor_ids), self.min_players)
        if len(actor_ids) > self.max_players:
            raise TooManyParticipants(len(actor_ids), self.max_players)
        names = {actor_id: self.hub.name_of(actor_id) for actor_id in actor_ids}
        with self._lock:
            if session_id in self._sessions:
                raise SessionAlreadyRunning(session_id)
            session = GameSession(
                session_id,
                actor_ids,
                self.hub,
                names={actor_id: name for actor_id, name in names.items() if name},
                threshold=self.threshold,
                rng=self._rng_factory(),
                min_players=self.min_players,
                on_finished=self._retire,
            )
            self._sessions[session_id] = session
        logger.info(f"[session-start] session={session_id} players={len(actor_ids)}")
        session.start()
        return session

    def _retire(self, session: GameSession) -> None:
        with self._lock:
            if self._sessions.get(session.session_id) is session:
                del self._sessions[session.session_id]
        logger.info(f"[session-retired] session={session.session_id} reason={session.end_reason}")

    def get(self, session_id: str) -> GameSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def active(self) -> List[GameSession]:
        with self._lock:
            return list(self._sessions.values())

    def on_action(self, session_id: Optional[str], actor_id: str, action: str, payload: Any = None) -> bool:
        """Forward a player's action into the session's pending wait.

        Actions for unknown sessions or from actors outside the session are
        logged and dropped. Returns whether any listener took the action.
        """
        try:
            session = self.get(session_id)
            session.player_by_actor(actor_id)
        except (SessionNotFound, ActorNotFound) as exc:
            logger.warning(f"[action-orphaned] action={action} {exc}")
            return False
        handled = session.broker.dispatch(actor_id, action, payload) > 0
        if not handled:
            logger.info(f"[action-ignored] session={session_id} actor={actor_id} action={action} not expected now")
        return handled

    def on_leave(self, session_id: Optional[str], actor_id: str) -> bool:
        """End the session's game if the actor was playing in it."""
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            return False
        try:
            player = session.player_by_actor(actor_id)
        except ActorNotFound:
            return False
        session.end(f"{player.name} left the session")
        return True

    def on_disconnect(self, actor_id: str, session_id: Optional[str] = None) -> bool:
        if session_id is not None:
            return self.on_leave(session_id, actor_id)
        for session in self.active():
            if self.on_leave(session.session_id, actor_id):
                return True
        return False
