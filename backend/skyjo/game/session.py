"""A running Skyjo game between the players of one session.

The phase loop is the ``run`` generator. Every phase step yields the future of
an ``ActionBroker`` wait; ``start`` drives the generator and resumes it from
the future's done-callback, i.e. synchronously on the call stack of the
action that settled the wait. Game state is only ever mutated on that stack.

Pipeline: reveal two cards -> pick up card -> place card [-> reveal card] ->
pick up card ... -> revealed last card -> new round -> reveal two cards, or
game ended once a total reaches the threshold.
"""

import logging
import random
from concurrent.futures import Future
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from ..channels import ChannelHub
from .actions import (
    CLICK_CARD,
    CLICK_DISCARD_PILE,
    DRAW_FROM_STACK,
    NEXT_ROUND,
    PLACE_CARD,
    ClickCard,
    PlaceCard,
)
from .broker import ActionBroker, ActionResult
from .deck import CARD_VALUES, Deck, card_color
from .errors import ActorNotFound, GameError, InsufficientParticipants, MalformedActionPayload, UnknownPhase
from .hand import Hand
from .player import Player
from .scoring import GAME_END_THRESHOLD, check_game_end, close_round, recompute_round_points

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
# placeholder for every card a viewer may not see
CONCEALED = None


class Phase(str, Enum):
    NEW_ROUND = 'new round'
    REVEAL_TWO_CARDS = 'reveal two cards'
    PICK_UP_CARD = 'pick up card'
    PLACE_CARD = 'place card'
    REVEAL_CARD = 'reveal card'
    REVEALED_LAST_CARD = 'revealed last card'
    GAME_ENDED = 'game ended'


class GameSession:
    def __init__(
        self,
        session_id: str,
        actor_ids: Sequence[str],
        hub: ChannelHub,
        names: Optional[Dict[str, str]] = None,
        threshold: int = GAME_END_THRESHOLD,
        rng: Optional[random.Random] = None,
        min_players: int = MIN_PLAYERS,
        on_finished: Optional[Callable[['GameSession'], None]] = None,
    ):
        if len(actor_ids) < min_players:
            raise InsufficientParticipants(len(actor_ids), min_players)
        names = names or {}
        self.session_id = session_id
        self.threshold = threshold
        self.broker = ActionBroker(hub, session_id)
        self.players: List[Player] = [
            Player(index=index, actor_id=actor_id, name=names.get(actor_id) or f"Player {index}")
            for index, actor_id in enumerate(actor_ids, start=1)
        ]
        self.round = 0
        self.phase = Phase.REVEAL_TWO_CARDS
        self.turn_index: Optional[int] = None
        self.deck: Optional[Deck] = None
        self.discard_pile: List[int] = []
        self.ended = False
        self.end_reason: Optional[str] = None
        self._hub = hub
        self._rng = rng or random.Random()
        self._on_finished = on_finished
        self._ready: set = set()
        self._loop: Optional[Iterator[Future]] = None
        self._deal_round()
        logger.info(f"[session-new] session={session_id} players={len(self.players)}")

    # ---- lifecycle ----

    def start(self) -> None:
        self._loop = self.run()
        self.broadcast_view()
        self._advance(None)

    def run(self) -> Iterator[Future]:
        steps = {
            Phase.REVEAL_TWO_CARDS: self._reveal_initial_cards,
            Phase.PICK_UP_CARD: self._pick_up_card,
            Phase.PLACE_CARD: self._place_card,
            Phase.REVEAL_CARD: self._reveal_card,
            Phase.REVEALED_LAST_CARD: self._revealed_last_card,
            Phase.NEW_ROUND: self._new_round,
        }
        while self.phase is not Phase.GAME_ENDED:
            self.apply_table_rules()
            step = steps.get(self.phase)
            if step is None:
                raise UnknownPhase(self.phase)
            logger.info(f"[phase] session={self.session_id} round={self.round} phase={self.phase.value}")
            waits = step()
            if waits is not None:
                yield from waits

    def _advance(self, result: Optional[ActionResult]) -> None:
        try:
            future = self._loop.send(result)
        except StopIteration:
            self._finish()
            return
        except Exception as exc:
            self.abort(exc)
            return
        future.add_done_callback(self._resume)

    def _resume(self, future: Future) -> None:
        if future.cancelled() or self.ended:
            return
        exc = future.exception()
        if exc is not None:
            self.abort(exc)
            return
        self._advance(future.result())

    def _finish(self) -> None:
        logger.info(f"[session-finished] session={self.session_id} round={self.round}")
        self._teardown('game ended')

    def abort(self, exc: BaseException) -> None:
        """Stop the game after an engine fault and tell every player."""
        logger.error(f"[session-abort] session={self.session_id} phase={self.phase}", exc_info=exc)
        self.end(f"The game was aborted: {exc}")

    def end(self, reason: str) -> None:
        with self.broker.lock:
            if self.ended:
                return
            self._hub.broadcast(self.session_id, 'session-ended', {'sessionId': self.session_id, 'reason': reason})
            self._teardown(reason)

    def _teardown(self, reason: str) -> None:
        if self.ended:
            return
        self.ended = True
        self.end_reason = reason
        self.broker.cancel()
        if self._loop is not None:
            self._loop.close()
        if self._on_finished is not None:
            self._on_finished(self)

    # ---- phase steps ----

    def _reveal_initial_cards(self):
        self.message('Reveal two cards')
        while True:
            pending = [player for player in self.players if not player.hand.has_two_or_more_known()]
            if not pending:
                break
            yield self.broker.wait(
                [(CLICK_CARD, self._reveal_card_action)],
                [player.actor_id for player in pending],
            )
        self._set_initial_turn()
        self.phase = Phase.PICK_UP_CARD
        self.broadcast_view()

    def _pick_up_card(self):
        player = self.player_on_turn()
        if player.closed_round:
            self.phase = Phase.REVEALED_LAST_CARD
            self.broadcast_view()
            return
        self.message(f"Waiting for {player.name} to pick up card")
        yield self.broker.wait(
            [
                (DRAW_FROM_STACK, self._draw_card_action),
                (CLICK_DISCARD_PILE, self._take_discard_pile_action),
            ],
            [player.actor_id],
        )
        self.phase = Phase.PLACE_CARD
        self.broadcast_view()

    def _place_card(self):
        player = self.player_on_turn()
        self.message(f"Waiting for {player.name} to place card")
        actions = [(PLACE_CARD, self._place_card_action)]
        # discarding obliges a reveal, so it needs a face-down card left
        if not player.took_from_discard and not player.hand.is_fully_known():
            actions.append((CLICK_DISCARD_PILE, self._discard_card_action))
        yield self.broker.wait(actions, [player.actor_id])
        player.took_from_discard = False
        self.broadcast_view()

    def _reveal_card(self):
        player = self.player_on_turn()
        self.message(f"Waiting for {player.name} to reveal a card")
        revealed_before = player.hand.revealed_count()
        while player.hand.revealed_count() <= revealed_before:
            yield self.broker.wait([(CLICK_CARD, self._reveal_card_action)], [player.actor_id])
        self.next_turn()
        self.phase = Phase.PICK_UP_CARD
        self.broadcast_view()

    def _revealed_last_card(self) -> None:
        for player in self.players:
            player.hand.reveal_all()
        self.discard_matched_triples()
        recompute_round_points(self.players)
        for message in close_round(self.players, self.closer()):
            self.message(message)
        self.phase = Phase.NEW_ROUND
        self.broadcast_view()
        self.message('Waiting for next round')

    def _new_round(self):
        if check_game_end(self.players, self.threshold):
            self.phase = Phase.GAME_ENDED
            winners = ', '.join(player.name for player in self.players if player.place == 1)
            self.message(f"{winners} won the game!")
            self.broadcast_view()
            return
        self._ready.clear()
        while True:
            waiting = [player.actor_id for player in self.players if player.actor_id not in self._ready]
            if not waiting:
                break
            yield self.broker.wait([(NEXT_ROUND, self._next_round_action)], waiting)
        self._deal_round()
        self.broadcast_view()

    # ---- action handlers ----

    def _reveal_card_action(self, actor_id: str, action: ClickCard) -> None:
        player = self.player_by_actor(actor_id)
        self._check_cell(player, CLICK_CARD, action.column, action.row)
        if player.hand.reveal(action.column, action.row):
            card = player.hand.card_at(action.column, action.row)
            logger.info(f"[reveal] session={self.session_id} player={player.name} card={card} at=({action.column},{action.row})")
        self.broadcast_view()

    def _draw_card_action(self, actor_id: str, action) -> None:
        player = self.player_by_actor(actor_id)
        if not self.deck.cards:
            self._recycle_discard_pile()
        player.card_cache = self.deck.draw()
        logger.info(f"[draw] session={self.session_id} player={player.name}")
        self.broadcast_view()

    def _take_discard_pile_action(self, actor_id: str, action) -> None:
        player = self.player_by_actor(actor_id)
        if not self.discard_pile:
            raise MalformedActionPayload(CLICK_DISCARD_PILE, 'the discard pile is empty')
        player.card_cache = self.discard_pile.pop()
        player.took_from_discard = True
        logger.info(f"[take-discard] session={self.session_id} player={player.name} card={player.card_cache}")
        self.broadcast_view()

    def _discard_card_action(self, actor_id: str, action) -> None:
        player = self.player_by_actor(actor_id)
        self.discard_pile.append(player.card_cache)
        player.card_cache = None
        self.phase = Phase.REVEAL_CARD
        logger.info(f"[discard] session={self.session_id} player={player.name}")
        self.broadcast_view()

    def _place_card_action(self, actor_id: str, action: PlaceCard) -> None:
        player = self.player_by_actor(actor_id)
        self._check_cell(player, PLACE_CARD, action.column, action.row)
        replaced = player.hand.swap(action.column, action.row, player.card_cache)
        player.card_cache = None
        self.discard_pile.append(replaced)
        logger.info(f"[place] session={self.session_id} player={player.name} at=({action.column},{action.row}) replaced={replaced}")
        self.next_turn()
        self.phase = Phase.PICK_UP_CARD
        self.broadcast_view()

    def _next_round_action(self, actor_id: str, action) -> None:
        player = self.player_by_actor(actor_id)
        self._ready.add(actor_id)
        self.message(f"{player.name} is ready for the next round")

    # ---- rules ----

    def apply_table_rules(self) -> None:
        """Rules checked on every loop tick, whatever the phase."""
        self.discard_matched_triples()
        self.detect_round_closure()
        recompute_round_points(self.players)

    def discard_matched_triples(self) -> None:
        for player in self.players:
            # rescan after each removal: column indices shift
            triples = player.hand.matched_triples()
            while triples:
                triple = triples[0]
                self.discard_pile.extend(player.hand.remove_column(triple.column))
                self.message(f"{player.name} discarded a column of {triple.value}s")
                triples = player.hand.matched_triples()

    def detect_round_closure(self) -> None:
        if any(player.closed_round for player in self.players):
            return
        for player in self.players:
            if player.hand.is_fully_known():
                player.closed_round = True
                self.message(f"{player.name} revealed all cards and closed the round")
                return

    def _set_initial_turn(self) -> None:
        best_sum = max(player.hand.revealed_sum() for player in self.players)
        candidates = [player for player in self.players if player.hand.revealed_sum() == best_sum]
        best_card = max(player.hand.highest_revealed_value() for player in candidates)
        candidates = [player for player in candidates if player.hand.highest_revealed_value() == best_card]
        starter = self._rng.choice(candidates)
        self.turn_index = self.players.index(starter)
        self.message(f"{starter.name} starts")

    def next_turn(self) -> None:
        self.turn_index = (self.turn_index + 1) % len(self.players)

    def _recycle_discard_pile(self) -> None:
        top = self.discard_pile.pop()
        self.deck.refill(self.discard_pile)
        self.discard_pile = [top]
        logger.info(f"[recycle] session={self.session_id} stack={len(self.deck)}")

    def _deal_round(self) -> None:
        self.round += 1
        self.deck = Deck(rng=self._rng)
        self.deck.shuffle()
        for player in self.players:
            player.start_round(Hand.layout(self.deck))
        self.discard_pile = [self.deck.draw()]
        self.turn_index = None
        self.phase = Phase.REVEAL_TWO_CARDS

    # ---- lookups ----

    def player_on_turn(self) -> Player:
        if self.turn_index is None:
            raise GameError('No player on turn found!')
        return self.players[self.turn_index]

    def closer(self) -> Player:
        for player in self.players:
            if player.closed_round:
                return player
        raise GameError('No player that closed the round found!')

    def player_by_actor(self, actor_id: str) -> Player:
        for player in self.players:
            if player.actor_id == actor_id:
                return player
        raise ActorNotFound(self.session_id, actor_id)

    def _check_cell(self, player: Player, action: str, column: int, row: int) -> None:
        if not player.hand.has_cell(column, row):
            raise MalformedActionPayload(action, f"no card at column {column}, row {row}")

    def card_inventory(self) -> List[int]:
        """Every card of this round: stack, hands, discard pile and caches."""
        cards = list(self.deck.cards) + list(self.discard_pile)
        for player in self.players:
            cards.extend(player.hand.cards())
            if player.card_cache is not None:
                cards.append(player.card_cache)
        return cards

    # ---- views ----

    def redacted_view(self) -> dict:
        """State safe to send to every participant.

        Unknown hand cells and every stack card are concealed. The same view
        goes to everyone, the owner of a hand included. Round points are
        derived from the known cards and nothing on the session is written.
        """
        return {
            'sessionId': self.session_id,
            'round': self.round,
            'phase': self.phase.value,
            'playerCount': len(self.players),
            'discardPile': list(self.discard_pile),
            'stackSize': len(self.deck),
            'stackCells': [CONCEALED] * len(self.deck),
            'cardColors': {str(value): card_color(value) for value in CARD_VALUES},
            'players': [self._player_view(index, player) for index, player in enumerate(self.players)],
        }

    def _player_view(self, index: int, player: Player) -> dict:
        hand = player.hand
        return {
            'id': player.index,
            'actorId': player.actor_id,
            'name': player.name,
            'turn': index == self.turn_index,
            'cache': player.card_cache,
            'tookFromDiscard': player.took_from_discard,
            'closedRound': player.closed_round,
            'roundPoints': hand.revealed_sum(),
            'totalPoints': player.total_points,
            'place': player.place,
            'hand': [
                [card if known else CONCEALED for card, known in zip(column, known_column)]
                for column, known_column in zip(hand.columns, hand.known)
            ],
        }

    def broadcast_view(self) -> None:
        self._hub.broadcast(self.session_id, 'game-update', self.redacted_view())

    def message(self, text: str) -> None:
        logger.info(f"[message] session={self.session_id} {text}")
        self._hub.broadcast(self.session_id, 'message', text)
