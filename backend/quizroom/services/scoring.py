"""Answer checking and points formulas for the three scoring modes."""

import math
from fractions import Fraction
from typing import Iterable, Union

TIME_BASED = 'time-based'
ORDER_BASED = 'order-based'
FIRST_ONLY = 'first-only'
SCORING_MODES = (TIME_BASED, ORDER_BASED, FIRST_ONLY)

# Share of base points for the 1st, 2nd and 3rd correct answer in order-based rounds
ORDER_MULTIPLIERS = (Fraction(1), Fraction(7, 10), Fraction(4, 10))


def normalize_answer(value) -> str:
    return str(value if value is not None else '').strip().lower()


def is_correct(raw_answer, correct_answer: Union[str, Iterable[str]]) -> bool:
    """Trimmed, case-insensitive match against one answer or a list of accepted answers."""
    given = normalize_answer(raw_answer)
    if isinstance(correct_answer, (list, tuple)):
        return given in {normalize_answer(a) for a in correct_answer}
    return given == normalize_answer(correct_answer)


def time_based_points(base_points: int, time_limit: float, time_taken: float) -> int:
    """Split the time limit into ten buckets; each elapsed bucket costs a tenth of the base.

    range = timeLimit / 10, mod = ceil((timeLimit - timeTaken) / range),
    points = basePoints * mod / 10, floored at zero. Exact fractions keep the
    bucket edges from drifting with float rounding.
    """
    limit = Fraction(time_limit)
    bucket = limit / 10
    mod = math.ceil((limit - Fraction(time_taken)) / bucket)
    return max(0, math.floor(base_points * Fraction(mod, 10)))


def order_based_points(base_points: int, correct_so_far: int) -> int:
    if correct_so_far < len(ORDER_MULTIPLIERS):
        return math.floor(base_points * ORDER_MULTIPLIERS[correct_so_far])
    return 0


def first_only_points(base_points: int, correct_so_far: int) -> int:
    return base_points if correct_so_far == 0 else 0


def points_for(scoring_mode: str, base_points: int, time_limit: float, time_taken: float, correct_so_far: int) -> int:
    """Points for a correct answer. ``correct_so_far`` excludes the answer being scored."""
    if scoring_mode == TIME_BASED:
        return time_based_points(base_points, time_limit, time_taken)
    if scoring_mode == ORDER_BASED:
        return order_based_points(base_points, correct_so_far)
    if scoring_mode == FIRST_ONLY:
        return first_only_points(base_points, correct_so_far)
    raise ValueError(f'Unknown scoring mode: {scoring_mode}')
