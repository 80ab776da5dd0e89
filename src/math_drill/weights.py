"""Per-operand difficulty weights: defaults, update rule and persistence."""
import math
import sqlite3

from loguru import logger

from math_drill.db import get_connection
from math_drill.models import DrillSettings, Family, Question

MIN_WEIGHT = 0.5
MAX_WEIGHT = 10.0

# Values most learners find inherently harder (or easier) to work with.
HARD_NUMBERS = frozenset({7, 8, 9, 12, 13, 14, 15, 17, 18, 19})
EASY_NUMBERS = frozenset({0, 1, 2, 5, 10, 11, 20})

MISS_PENALTY = 2.0
SLOW_PENALTY = 1.0
HESITANT_PENALTY = 0.2
FAST_REWARD = 0.2

SLOW_MS = 5000
HESITANT_MS = 3000
FAST_MS = 1500


def initial_weight(value: int, stored_weight: float = None) -> float:
    """Starting weight for an operand; a stored weight always wins."""
    if stored_weight is not None:
        return stored_weight
    if value in EASY_NUMBERS:
        return 0.8
    if value in HARD_NUMBERS:
        return 1.5
    return 1.0


def update_weight(previous_weight: float, correct: bool, elapsed_ms: int) -> float:
    """Adjust one operand's weight from a graded answer.

    Args:
        previous_weight: Current weight of the operand.
        correct: Whether the learner answered correctly.
        elapsed_ms: Time between showing the question and the answer.

    Returns:
        The new weight, never above MAX_WEIGHT. Fast correct answers can
        lower the weight but never below MIN_WEIGHT.
    """
    weight = previous_weight
    if not correct:
        weight += MISS_PENALTY
    elif elapsed_ms > SLOW_MS:
        weight += SLOW_PENALTY
    elif elapsed_ms > HESITANT_MS:
        weight += HESITANT_PENALTY
    elif elapsed_ms < FAST_MS:
        weight = max(MIN_WEIGHT, weight - FAST_REWARD)
    return min(weight, MAX_WEIGHT)


def implicated_operands(question: Question) -> list[int]:
    """Operand values whose weights an answer to `question` should move.

    Division tracks the divisor and the quotient, since the dividend is
    derived from them and never sampled.
    """
    if question.family is Family.SQUARES:
        return [question.operand1]
    if question.family is Family.DIVISION:
        return [question.operand2, question.correct_answer]
    return [question.operand1, question.operand2]


def apply_answer(weights: dict, question: Question, correct: bool, elapsed_ms: int) -> dict:
    """Update `weights` in place for every operand implicated by `question`."""
    for value in implicated_operands(question):
        previous = weights.get(value, initial_weight(value))
        weights[value] = update_weight(previous, correct, elapsed_ms)
        logger.debug(
            f"weight {question.family.value}[{value}] {previous:.2f} -> {weights[value]:.2f}"
        )
    return weights


def build_weight_snapshot(settings: DrillSettings, persisted: dict) -> dict:
    """Session snapshot covering every operand the settings can produce."""
    snapshot = {}
    ranges = [(settings.min, settings.max)]
    if not settings.family.is_unary:
        ranges.append((settings.min2, settings.max2))
    for low, high in ranges:
        for value in range(low, high + 1):
            if value not in snapshot:
                snapshot[value] = initial_weight(value, persisted.get(value))
    return snapshot


def _is_valid_weight(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def clamp_weights(mapping) -> dict[int, float]:
    """Valid entries of a weight mapping, clamped into [MIN_WEIGHT, MAX_WEIGHT].

    Anything that isn't a dict yields an empty mapping; malformed entries
    are dropped.
    """
    if not isinstance(mapping, dict):
        return {}
    return {
        operand: min(max(float(weight), MIN_WEIGHT), MAX_WEIGHT)
        for operand, weight in mapping.items()
        if isinstance(operand, int) and not isinstance(operand, bool) and _is_valid_weight(weight)
    }


def load_weights(db_path: str, family: Family, profile: str) -> dict[int, float]:
    """Stored weights for one family and profile.

    Returns an empty mapping when nothing is stored, when the database can't
    be read, or when any stored value is malformed.
    """
    try:
        conn = get_connection(db_path)
        try:
            rows = conn.execute(
                "SELECT operand, weight FROM operand_weights WHERE family = ? AND profile = ?",
                (Family(family).value, profile),
            ).fetchall()
        finally:
            conn.close()
    except (sqlite3.Error, ValueError) as e:
        logger.warning(f"Failed to load weights for {family}/{profile}: {e}")
        return {}
    weights = {}
    for row in rows:
        operand, weight = row["operand"], row["weight"]
        if not isinstance(operand, int) or not _is_valid_weight(weight):
            logger.warning(f"Ignoring malformed stored weights for {family}/{profile}")
            return {}
        weights[operand] = min(max(float(weight), MIN_WEIGHT), MAX_WEIGHT)
    return weights


def save_weights(db_path: str, family: Family, profile: str, weights: dict) -> None:
    """Upsert the weight mapping. Failures are logged, never raised."""
    try:
        conn = get_connection(db_path)
        try:
            with conn:
                conn.executemany(
                    """INSERT INTO operand_weights (family, profile, operand, weight)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(family, profile, operand) DO UPDATE SET weight = excluded.weight""",
                    [
                        (Family(family).value, profile, int(operand), float(weight))
                        for operand, weight in weights.items()
                    ],
                )
        finally:
            conn.close()
    except (sqlite3.Error, ValueError, TypeError) as e:
        logger.warning(f"Failed to save weights for {family}/{profile}: {e}")
        return
    logger.info(f"Saved {len(weights)} weights for {Family(family).value}/{profile}")


def clear_weights(db_path: str, profile: str = None) -> None:
    """Forget all learned weights, optionally for a single profile."""
    conn = get_connection(db_path)
    if profile is None:
        conn.execute("DELETE FROM operand_weights")
    else:
        conn.execute("DELETE FROM operand_weights WHERE profile = ?", (profile,))
    conn.commit()
    conn.close()
    logger.info(f"Cleared weights for {profile or 'all profiles'}")


class SqliteWeightStore:
    """Persistence collaborator bound to one database file."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def load_weights(self, family: Family, profile: str) -> dict[int, float]:
        return load_weights(self.db_path, family, profile)

    def save_weights(self, family: Family, profile: str, weights: dict) -> None:
        save_weights(self.db_path, family, profile, weights)
