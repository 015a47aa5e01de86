"""Client actions, validated before they reach the session.

Each Socket.IO action event maps to one pydantic model; anything that does
not validate is rejected as ``MalformedActionPayload``.
"""

from typing import Any, Dict, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import MalformedActionPayload

CLICK_CARD = 'click-card'
DRAW_FROM_STACK = 'draw-from-stack'
CLICK_DISCARD_PILE = 'click-discard-pile'
PLACE_CARD = 'place-card'
NEXT_ROUND = 'next-round'


class _Action(BaseModel):
    model_config = ConfigDict(extra='forbid', strict=True, frozen=True)


class _CardPosition(_Action):
    column: int = Field(ge=0)
    row: int = Field(ge=0)


class ClickCard(_CardPosition):
    pass


class PlaceCard(_CardPosition):
    pass


class DrawFromStack(_Action):
    pass


class ClickDiscardPile(_Action):
    pass


class NextRound(_Action):
    pass


Action = Union[ClickCard, DrawFromStack, ClickDiscardPile, PlaceCard, NextRound]

ACTIONS: Dict[str, Type[_Action]] = {
    CLICK_CARD: ClickCard,
    DRAW_FROM_STACK: DrawFromStack,
    CLICK_DISCARD_PILE: ClickDiscardPile,
    PLACE_CARD: PlaceCard,
    NEXT_ROUND: NextRound,
}


def parse_action(name: str, payload: Any) -> Action:
    model = ACTIONS.get(name)
    if model is None:
        raise MalformedActionPayload(name, 'unknown action')
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise MalformedActionPayload(name, f"expected an object, got {type(payload).__name__}")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise MalformedActionPayload(name, str(exc)) from exc
