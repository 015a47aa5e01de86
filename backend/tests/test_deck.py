import itertools
import random
from collections import Counter

import pytest

from skyjo.game.deck import CARD_COUNTS, DECK_SIZE, Deck, card_color, generate
from skyjo.game.errors import EmptyDeck


def test_generate_builds_fixed_population():
    cards = generate()
    assert len(cards) == DECK_SIZE == 150
    counts = Counter(cards)
    assert counts[-2] == 5
    assert counts[-1] == 10
    assert counts[0] == 15
    assert all(counts[value] == 10 for value in range(1, 13))
    assert counts == Counter(CARD_COUNTS)


def test_generate_is_deterministic_ascending_runs():
    assert generate() == generate()
    assert generate() == sorted(generate())


@pytest.mark.parametrize('size', [0, 1, 2, 7, 150])
def test_shuffle_is_a_permutation(size):
    deck = Deck(cards=range(size), rng=random.Random(size))
    deck.shuffle()
    assert len(deck) == size
    assert sorted(deck.cards) == list(range(size))


def test_shuffle_keeps_the_multiset_of_a_full_stack():
    deck = Deck(rng=random.Random(3))
    deck.shuffle()
    assert Counter(deck.cards) == Counter(generate())


def test_shuffle_is_uniform_over_permutations():
    rng = random.Random(20240601)
    trials = 24000
    counts = Counter()
    for _ in range(trials):
        deck = Deck(cards=[0, 1, 2, 3], rng=rng)
        deck.shuffle()
        counts[tuple(deck.cards)] += 1

    permutations = list(itertools.permutations([0, 1, 2, 3]))
    assert set(counts) == set(permutations)
    expected = trials / len(permutations)
    chi_square = sum((counts[perm] - expected) ** 2 / expected for perm in permutations)
    # 23 degrees of freedom, p = 0.001
    assert chi_square < 49.73


def test_shuffle_moves_every_card_to_every_position():
    rng = random.Random(99)
    positions = Counter()
    trials = 5000
    for _ in range(trials):
        deck = Deck(cards=range(5), rng=rng)
        deck.shuffle()
        positions[deck.cards.index(0)] += 1
    for position in range(5):
        assert abs(positions[position] / trials - 0.2) < 0.03


def test_draw_takes_the_last_card():
    deck = Deck(cards=[1, 2, 3])
    assert deck.draw() == 3
    assert deck.cards == [1, 2]


def test_draw_from_empty_stack_raises():
    deck = Deck(cards=[])
    with pytest.raises(EmptyDeck):
        deck.draw()


def test_take_consumes_from_the_front():
    deck = Deck(cards=range(10))
    assert deck.take(4) == [0, 1, 2, 3]
    assert deck.cards == [4, 5, 6, 7, 8, 9]
    with pytest.raises(EmptyDeck):
        deck.take(7)
    assert len(deck) == 6


def test_refill_adds_and_reshuffles():
    deck = Deck(cards=[1], rng=random.Random(5))
    deck.refill([2, 3, 4])
    assert sorted(deck.cards) == [1, 2, 3, 4]


def test_card_color_is_monotonic_in_six_buckets():
    colors = [card_color(value) for value in range(-2, 13)]
    buckets = [color for color, _ in itertools.groupby(colors)]
    assert len(buckets) == 6
    assert len(set(buckets)) == 6
    assert card_color(-2) == card_color(-1) == 'darkblue'
    assert card_color(0) == 'lightblue'
    assert card_color(12) == 'red'


def test_card_color_rejects_non_cards():
    with pytest.raises(ValueError):
        card_color(13)
    with pytest.raises(ValueError):
        card_color(-3)
