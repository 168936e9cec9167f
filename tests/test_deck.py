import random
from collections import Counter

import pytest

from memory_game.services.games.deck import generate_deck


@pytest.mark.parametrize('seed', range(50))
def test_every_value_appears_exactly_twice(seed):
    deck = generate_deck(rng=random.Random(seed))
    assert len(deck) == 16
    assert Counter(deck) == {value: 2 for value in range(8)}


def test_same_seed_gives_same_deck():
    assert generate_deck(rng=random.Random(42)) == generate_deck(rng=random.Random(42))


def test_shuffle_moves_cards_around():
    # Across many seeds every value should show up in the first slot
    first_cards = {generate_deck(rng=random.Random(seed))[0] for seed in range(500)}
    assert first_cards == set(range(8))


def test_custom_pair_count():
    deck = generate_deck(pair_count=3, rng=random.Random(0))
    assert sorted(deck) == [0, 0, 1, 1, 2, 2]


def test_default_rng_still_valid():
    assert Counter(generate_deck()) == {value: 2 for value in range(8)}


def test_rejects_non_positive_pair_count():
    with pytest.raises(ValueError):
        generate_deck(pair_count=0)
