"""Spaced repetition interval calculation."""
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Union

from hskdeck.config import settings


class Grade(Enum):
    """Grading outcomes of a review."""
    WRONG = 0
    RIGHT = 1
    PERFECT = 2  # reserved for three-way grading


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_grade(outcome: Union[bool, Grade]) -> Grade:
    if isinstance(outcome, Grade):
        return outcome
    return Grade.RIGHT if outcome else Grade.WRONG


def next_interval(outcome: Union[bool, Grade], previous_interval: float) -> int:
    """Calculate the next review interval for a word.

    A wrong answer resets spacing to the base interval; a right answer grows
    it by 1.5 and a perfect one by 2.5, rounded to an integer.
    """
    grade = to_grade(outcome)
    if grade is Grade.WRONG:
        return settings.review.base_interval
    if grade is Grade.RIGHT:
        return round_half_up(previous_interval * settings.review.correct_multiplier)
    return round_half_up(previous_interval * settings.review.perfect_multiplier)
