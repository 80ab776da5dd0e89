"""Weighted operand selection."""
import random

from math_drill.weights import initial_weight


def weighted_choice(candidates: list[tuple[int, float]], rng) -> int:
    """Pick a value from (value, weight) pairs with probability weight/total.

    Walks the candidates in order, subtracting each weight from a uniform
    draw in [0, total) until the remainder reaches zero. Falls back to the
    last candidate if rounding leaves nothing selected.
    """
    total = sum(weight for _, weight in candidates)
    remainder = rng.random() * total
    for value, weight in candidates:
        remainder -= weight
        if remainder <= 0:
            return value
    return candidates[-1][0]


def sample_operand(low: int, high: int, weights: dict = None, rng=None) -> int:
    """Draw one operand from [low, high].

    With `weights` set to None the draw is uniform. Otherwise each value in
    the range is weighted by its snapshot weight, or its heuristic default
    when the snapshot has no entry for it.

    Raises:
        ValueError: if low > high. Callers normalise ranges first.
    """
    if low > high:
        raise ValueError(f"empty operand range [{low}, {high}]")
    rng = rng or random
    if weights is None:
        return rng.randint(low, high)
    candidates = [
        (value, weights.get(value, initial_weight(value)))
        for value in range(low, high + 1)
    ]
    return weighted_choice(candidates, rng)
