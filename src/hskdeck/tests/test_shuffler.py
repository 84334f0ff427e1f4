"""Tests for the deck shuffler."""
import random
from collections import Counter

import pytest

from hskdeck.services.shuffler import shuffle


def test_shuffle_does_not_mutate_input() -> None:
    """Test that the input keeps its order and a new list is returned."""
    items = list(range(10))
    original = list(items)

    result = shuffle(items)

    assert items == original
    assert result is not items
    assert len(result) == len(items)
    assert sorted(result) == original


def test_shuffle_keeps_duplicates() -> None:
    """Test that the output is a permutation of a multiset."""
    items = ["a", "a", "b", "c", "c", "c"]
    assert Counter(shuffle(items)) == Counter(items)


@pytest.mark.parametrize("items", [[], ["only"]])
def test_shuffle_trivial_inputs(items) -> None:
    """Test that empty and singleton inputs come back unchanged."""
    result = shuffle(items)
    assert result == items
    assert result is not items


def test_shuffle_accepts_tuples() -> None:
    """Test shuffling an immutable sequence."""
    assert sorted(shuffle((3, 1, 2))) == [1, 2, 3]


def test_shuffle_reaches_every_permutation() -> None:
    """Test that all 3! orderings occur with roughly equal frequency."""
    rng = random.Random(42)
    trials = 6000
    counts = Counter(tuple(shuffle([1, 2, 3], rng)) for _ in range(trials))

    assert len(counts) == 6
    for count in counts.values():
        assert abs(count - trials / 6) < trials * 0.05


def test_shuffle_position_distribution_is_uniform() -> None:
    """Test that every element lands in every position about equally often."""
    rng = random.Random(7)
    n = 5
    trials = 10000
    positions = [Counter() for _ in range(n)]
    for _ in range(trials):
        for index, item in enumerate(shuffle(range(n), rng)):
            positions[item][index] += 1

    expected = trials / n
    for counter in positions:
        assert set(counter) == set(range(n))
        for count in counter.values():
            assert abs(count - expected) < expected * 0.1


def test_shuffle_uses_given_rng() -> None:
    """Test that the same seed gives the same order."""
    assert shuffle(range(20), random.Random(3)) == shuffle(range(20), random.Random(3))
