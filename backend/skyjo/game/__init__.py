"""Skyjo game engine: cards, hands, scoring and the per-session phase loop.

This package holds the game mechanics only. Socket handlers and HTTP routes
reach it through ``SessionRegistry`` and talk to players through a
``ChannelHub``.
"""

from .errors import (
    ActorNotFound,
    EmptyDeck,
    GameError,
    InsufficientParticipants,
    MalformedActionPayload,
    SessionAlreadyRunning,
    SessionNotFound,
    TooManyParticipants,
    UnknownPhase,
)
from .registry import SessionRegistry
from .session import CONCEALED, GameSession, Phase

__all__ = [
    'ActorNotFound',
    'CONCEALED',
    'EmptyDeck',
    'GameError',
    'GameSession',
    'InsufficientParticipants',
    'MalformedActionPayload',
    'Phase',
    'SessionAlreadyRunning',
    'SessionNotFound',
    'SessionRegistry',
    'TooManyParticipants',
    'UnknownPhase',
]
