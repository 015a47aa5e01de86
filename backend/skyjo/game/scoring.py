"""Round and game scoring.

Pure functions over a list of players so they can be called on every phase
tick without side effects beyond the fields they document.
"""

from typing import List, Sequence

from .player import Player

GAME_END_THRESHOLD = 100


def recompute_round_points(players: Sequence[Player]) -> None:
    for player in players:
        player.round_points = player.hand.revealed_sum()


def players_with_lowest_round_points(players: Sequence[Player]) -> List[Player]:
    lowest = min(player.round_points for player in players)
    return [player for player in players if player.round_points == lowest]


def close_round(players: Sequence[Player], closer: Player) -> List[str]:
    """Add this round's points to every total and return outcome messages.

    The closer's points are doubled when another player scored strictly
    less. A closer who ties for the lowest score is not penalised.
    """
    lowest = players_with_lowest_round_points(players)
    messages: List[str] = []
    if closer in lowest and len(lowest) == 1:
        messages.append(f"{closer.name} won the round!")
    elif len(lowest) == 1:
        messages.append(f"{lowest[0].name} won the round!")
    else:
        messages.append(f"{', '.join(player.name for player in lowest)} scored equally the lowest points!")

    penalised = closer not in lowest
    for player in players:
        if player is closer and penalised:
            player.total_points += player.round_points * 2
        else:
            player.total_points += player.round_points
    if penalised:
        messages.append(f"{closer.name} points are doubled!")
    return messages


def check_game_end(players: Sequence[Player], threshold: int = GAME_END_THRESHOLD) -> bool:
    """Return True once any total reaches the threshold.

    The player(s) with the lowest total are marked ``place = 1``.
    """
    if not any(player.total_points >= threshold for player in players):
        return False
    lowest = min(player.total_points for player in players)
    for player in players:
        if player.total_points == lowest:
            player.place = 1
    return True
