"""Errors raised by the game engine.

Structural faults (``EmptyDeck``, ``UnknownPhase``) abort the session they
occur in. Input problems (``MalformedActionPayload``, ``ActorNotFound``) are
absorbed without touching game state. ``InsufficientParticipants`` and the
other session-creation refusals are reported back to the caller.
"""

from typing import Any


class GameError(Exception):
    """Base class for all engine errors."""
    pass


class EmptyDeck(GameError):
    """Raised when a card is requested from an empty stack."""

    def __init__(self, requested: int = 1, available: int = 0):
        self.requested = requested
        self.available = available
        super().__init__(f"Cannot take {requested} card(s) from a stack of {available}")


class UnknownPhase(GameError):
    def __init__(self, phase: Any):
        self.phase = phase
        super().__init__(f"Invalid game phase: {phase!r}")


class ActorNotFound(GameError):
    def __init__(self, session_id: str, actor_id: str):
        self.session_id = session_id
        self.actor_id = actor_id
        super().__init__(f"No player with actor id {actor_id} in session {session_id}")


class MalformedActionPayload(GameError):
    """Raised when an action payload has the wrong shape or points nowhere."""

    def __init__(self, action: str, reason: str):
        self.action = action
        self.reason = reason
        super().__init__(f"Malformed '{action}' payload: {reason}")


class InsufficientParticipants(GameError):
    def __init__(self, count: int, required: int):
        self.count = count
        self.required = required
        super().__init__(f"Not enough players to start a game ({count} joined, {required} required)")


class TooManyParticipants(GameError):
    def __init__(self, count: int, allowed: int):
        self.count = count
        self.allowed = allowed
        super().__init__(f"Too many players to start a game ({count} joined, at most {allowed} allowed)")


class SessionNotFound(GameError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"No running game for session {session_id}")


class SessionAlreadyRunning(GameError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"A game is already running in session {session_id}")
