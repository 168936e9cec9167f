import random
from typing import List, Optional

from .scoring import PAIR_COUNT


def generate_deck(pair_count: int = PAIR_COUNT, rng: Optional[random.Random] = None) -> List[int]:
    """Build a shuffled deck holding each value in ``range(pair_count)`` twice.

    Fisher-Yates from the last index down to 1; ``rng`` defaults to the
    module-level generator.
    """
    if pair_count < 1:
        raise ValueError(f'pair_count must be positive, got {pair_count}')
    source = rng or random
    cards = [value for value in range(pair_count) for _ in (0, 1)]
    for i in range(len(cards) - 1, 0, -1):
        j = source.randint(0, i)
        cards[i], cards[j] = cards[j], cards[i]
    return cards
