"""Uniform shuffling of decks."""
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly shuffled copy of `items` (Fisher-Yates).

    Walks from the last index down, swapping each element with one picked
    uniformly from index 0..i inclusive. The input is left untouched.
    """
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result
