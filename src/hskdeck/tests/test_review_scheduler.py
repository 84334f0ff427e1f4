"""Tests for spaced repetition intervals."""
import pytest

from hskdeck.services.review_scheduler import Grade, next_interval, round_half_up


@pytest.mark.parametrize("previous", [1, 2, 10, 37, 1000])
def test_wrong_answer_resets_interval(previous: int) -> None:
    """Test that a wrong answer returns the base interval."""
    assert next_interval(False, previous) == 1
    assert next_interval(Grade.WRONG, previous) == 1


def test_correct_answer_grows_interval() -> None:
    """Test the 1.5 multiplier for a correct answer."""
    assert next_interval(True, 10) == 15
    assert next_interval(True, 2) == 3
    assert next_interval(Grade.RIGHT, 4) == 6


def test_perfect_answer_grows_interval() -> None:
    """Test the reserved 2.5 multiplier."""
    assert next_interval(Grade.PERFECT, 10) == 25
    assert next_interval(Grade.PERFECT, 1) == 3


def test_rounding_is_half_away_from_zero() -> None:
    """Test that halves are rounded up, unlike Python's banker's rounding."""
    assert round_half_up(1.5) == 2
    assert round_half_up(2.5) == 3
    assert round_half_up(2.25) == 2
    assert next_interval(True, 1) == 2
    assert next_interval(True, 5) == 8  # 7.5


def test_result_is_integer() -> None:
    """Test that intervals are stored as integers."""
    assert isinstance(next_interval(True, 3), int)
    assert isinstance(next_interval(False, 3), int)
