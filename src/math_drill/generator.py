"""Question generation for the five operation families."""
from loguru import logger

from math_drill.models import DrillSettings, Family, Question
from math_drill.sampler import sample_operand

MAX_REGENERATIONS = 5


def generate_question(settings: DrillSettings, weights: dict = None, rng=None) -> Question:
    """Compose a fresh question for the configured family.

    `weights` is the session's weight snapshot, or None for uniform draws.
    Division samples the divisor and the quotient and derives the dividend,
    so every division question divides exactly.
    """
    family = Family(settings.family)

    def draw(low, high):
        return sample_operand(low, high, weights, rng)

    if family is Family.SQUARES:
        base = draw(settings.min, settings.max)
        return Question(family, base, base * base)

    if family is Family.DIVISION:
        divisor = draw(settings.min2, settings.max2)
        quotient = draw(settings.min, settings.max)
        return Question(family, divisor * quotient, quotient, operand2=divisor)

    first = draw(settings.min, settings.max)
    second = draw(settings.min2, settings.max2)
    if family is Family.ADDITION:
        return Question(family, first, first + second, operand2=second)
    if family is Family.SUBTRACTION:
        if (
            settings.profile_is_simplified
            and settings.swap_subtraction_when_simplified
            and second > first
        ):
            first, second = second, first
        return Question(family, first, first - second, operand2=second)
    return Question(family, first, first * second, operand2=second)


def generate_fresh_question(
    settings: DrillSettings,
    weights: dict = None,
    rng=None,
    previous: Question = None,
) -> Question:
    """Generate a question that differs from `previous` where possible.

    Regenerates up to MAX_REGENERATIONS times while the candidate repeats the
    previous question's operands; the last candidate is kept regardless.
    """
    question = generate_question(settings, weights, rng)
    attempts = 0
    while attempts < MAX_REGENERATIONS and question.same_operands(previous):
        question = generate_question(settings, weights, rng)
        attempts += 1
    if attempts:
        logger.debug(f"Regenerated {attempts} time(s) to avoid repeating {previous.text()}")
    return question
