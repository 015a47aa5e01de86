from dataclasses import dataclass
from typing import Optional

from .hand import Hand


@dataclass(eq=False)
class Player:
    index: int
    actor_id: str
    name: str
    hand: Optional[Hand] = None
    # card held between drawing and placing/discarding
    card_cache: Optional[int] = None
    took_from_discard: bool = False
    round_points: int = 0
    total_points: int = 0
    closed_round: bool = False
    place: Optional[int] = None

    def start_round(self, hand: Hand) -> None:
        self.hand = hand
        self.card_cache = None
        self.took_from_discard = False
        self.round_points = 0
        self.closed_round = False
