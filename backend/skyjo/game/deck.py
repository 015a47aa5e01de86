"""The 150-card Skyjo stack."""

import random
from typing import Iterable, List, Optional

from .errors import EmptyDeck

CARD_VALUES = range(-2, 13)
# value -> copies in a full stack
CARD_COUNTS = {-2: 5, -1: 10, 0: 15, **{value: 10 for value in range(1, 13)}}
DECK_SIZE = sum(CARD_COUNTS.values())

# (highest value in bucket, colour), ascending
_COLOR_BUCKETS = (
    (-1, 'darkblue'),
    (0, 'lightblue'),
    (4, 'green'),
    (8, 'yellow'),
    (10, 'orange'),
    (12, 'red'),
)


def card_color(value: int) -> str:
    """Return the rendering colour for a card value."""
    if value not in CARD_VALUES:
        raise ValueError(f"Not a card value: {value!r}")
    for upper, color in _COLOR_BUCKETS:
        if value <= upper:
            return color
    raise ValueError(f"Not a card value: {value!r}")


def generate() -> List[int]:
    """Return the full population in ascending value runs."""
    cards: List[int] = []
    for value in CARD_VALUES:
        cards.extend([value] * CARD_COUNTS[value])
    return cards


class Deck:
    """Face-down stack. The top of the stack is the end of ``cards``."""

    def __init__(self, cards: Optional[Iterable[int]] = None, rng: Optional[random.Random] = None):
        self.cards: List[int] = list(cards) if cards is not None else generate()
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self.cards)

    def shuffle(self) -> None:
        # random.shuffle is a Fisher-Yates pass over the whole list
        self._rng.shuffle(self.cards)

    def draw(self) -> int:
        if not self.cards:
            raise EmptyDeck()
        return self.cards.pop()

    def take(self, count: int) -> List[int]:
        """Remove ``count`` cards from the bottom of the stack."""
        if count > len(self.cards):
            raise EmptyDeck(count, len(self.cards))
        taken = self.cards[:count]
        del self.cards[:count]
        return taken

    def refill(self, cards: Iterable[int]) -> None:
        self.cards.extend(cards)
        self.shuffle()
