"""Adaptive question scheduler.

Drives one timed drill session:
- picks the next question, preferring due retries over fresh generation
- grades answers and moves per-operand weights from correctness and latency
- re-queues missed questions so they come back a few questions later
- flushes the session's weights exactly once when the session ends
"""
import random
import re
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from loguru import logger

from math_drill.generator import generate_fresh_question
from math_drill.models import AnswerRecord, DrillSettings, Family, Question, SessionStats
from math_drill.weights import apply_answer, build_weight_snapshot, clamp_weights

RETRY_SPACING = 2  # fresh questions between retries
RETRY_BACKLOG = 3  # release immediately once the queue grows past this

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class SchedulerState(str, Enum):
    IDLE = "idle"
    AWAITING_ANSWER = "awaiting_answer"
    GRADED = "graded"
    ENDED = "ended"


def parse_answer(raw) -> int:
    """Read the learner's input as an integer, treating garbage as 0."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    text = str(raw or "").replace("−", "-")
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class RetryQueue:
    """FIFO of missed questions waiting to be asked again."""

    def __init__(self, spacing: int = RETRY_SPACING, backlog: int = RETRY_BACKLOG):
        self.spacing = spacing
        self.backlog = backlog
        self.questions_since_retry = 0
        self._items = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def push(self, question: Question) -> None:
        self._items.append(question.as_retry())

    def is_due(self) -> bool:
        return bool(self._items) and (
            self.questions_since_retry >= self.spacing or len(self._items) > self.backlog
        )

    def take_due(self) -> Optional[Question]:
        """Dequeue the head if a retry is due, resetting the spacing counter."""
        if not self.is_due():
            return None
        self.questions_since_retry = 0
        return self._items.popleft()

    def note_fresh(self) -> None:
        self.questions_since_retry += 1


@dataclass
class SessionState:
    """Everything one drill session mutates, held behind a single handle."""

    weights: dict = field(default_factory=dict)
    retry_queue: RetryQueue = field(default_factory=RetryQueue)
    current_question: Optional[Question] = None
    question_shown_at: int = 0
    history: list = field(default_factory=list)
    score: int = 0
    correct: int = 0
    streak: int = 0
    best_streak: int = 0
    remaining_seconds: int = 0
    status: SchedulerState = SchedulerState.IDLE
    started_at: Optional[str] = None
    stats: Optional[SessionStats] = None


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class Scheduler:
    """Runs one drill session against a weight persistence collaborator.

    `persistence` needs `load_weights(family, profile)` and
    `save_weights(family, profile, mapping)`. `rng` needs `random()` and
    `randint(a, b)`; `clock` returns milliseconds.

    Settings must already be normalised (min <= max for both ranges).
    Use as a context manager to guarantee the final flush on abrupt exit.
    """

    def __init__(
        self,
        settings: DrillSettings,
        persistence=None,
        rng=None,
        clock=None,
        state: SessionState = None,
    ):
        self.settings = settings
        self.persistence = persistence
        self.rng = rng or random.Random()
        self.clock = clock or _monotonic_ms
        self.state = state or SessionState()

    @property
    def adaptive(self) -> bool:
        return self.settings.adaptive_weighting_enabled

    @property
    def current_question(self) -> Optional[Question]:
        return self.state.current_question

    @property
    def is_finished(self) -> bool:
        return self.state.status is SchedulerState.ENDED

    def start(self) -> Question:
        state = self.state
        if state.status is not SchedulerState.IDLE:
            return state.current_question
        if self.adaptive:
            state.weights = build_weight_snapshot(self.settings, self._load_persisted())
        state.remaining_seconds = self.settings.duration_seconds
        state.started_at = datetime.now().isoformat()
        logger.info(
            f"Session started: {Family(self.settings.family).value} profile={self.settings.profile} "
            f"adaptive={self.adaptive} duration={self.settings.duration_seconds}s"
        )
        return self.next_question()

    def next_question(self) -> Question:
        """Choose and present the next question."""
        state = self.state
        question = state.retry_queue.take_due() if self.adaptive else None
        if question is not None:
            logger.debug(f"Retrying {question.text()} ({len(state.retry_queue)} left in queue)")
        else:
            state.retry_queue.note_fresh()
            question = generate_fresh_question(
                self.settings,
                state.weights if self.adaptive else None,
                self.rng,
                previous=state.current_question,
            )
        state.current_question = question
        state.question_shown_at = self.clock()
        state.status = SchedulerState.AWAITING_ANSWER
        return question

    def submit_answer(self, raw_answer) -> Optional[AnswerRecord]:
        """Grade an answer to the current question and move on.

        Returns None when no question is awaiting an answer (for example
        after the session has ended).
        """
        state = self.state
        if state.status is not SchedulerState.AWAITING_ANSWER:
            return None
        question = state.current_question
        value = parse_answer(raw_answer)
        elapsed = max(0, self.clock() - state.question_shown_at)
        correct = value == question.correct_answer
        state.status = SchedulerState.GRADED

        if self.adaptive:
            if not correct:
                state.retry_queue.push(question)
            apply_answer(state.weights, question, correct, elapsed)

        record = AnswerRecord(question, value, correct, elapsed)
        state.history.append(record)
        if correct:
            state.score += 1
            state.correct += 1
            state.streak += 1
            state.best_streak = max(state.best_streak, state.streak)
        else:
            state.streak = 0
        logger.debug(
            f"{question.text()} = {value} ({'correct' if correct else 'wrong'}, {elapsed}ms)"
        )

        self.next_question()
        return record

    def tick(self, seconds: int = 1) -> int:
        """Advance the countdown; ends the session when it reaches zero."""
        state = self.state
        if state.status is SchedulerState.ENDED:
            return 0
        state.remaining_seconds = max(0, state.remaining_seconds - seconds)
        if state.remaining_seconds == 0:
            self.finish()
        return state.remaining_seconds

    def flush(self) -> None:
        """Persist the current weight snapshot. Safe to call repeatedly."""
        if not self.adaptive or self.persistence is None:
            return
        try:
            self.persistence.save_weights(
                self.settings.family, self.settings.profile, dict(self.state.weights)
            )
        except Exception as e:
            logger.warning(f"Weight flush failed, session adjustments lost: {e}")

    def finish(self) -> SessionStats:
        """End the session, flushing weights the first time only."""
        state = self.state
        if state.stats is not None:
            return state.stats
        state.status = SchedulerState.ENDED
        self.flush()
        state.stats = SessionStats(
            total_questions=len(state.history),
            correct=state.correct,
            score=state.score,
            history=list(state.history),
            started_at=state.started_at,
            ended_at=datetime.now().isoformat(),
        )
        logger.info(
            f"Session ended: {state.stats.correct}/{state.stats.total_questions} correct, "
            f"{len(state.retry_queue)} retries pending"
        )
        return state.stats

    def _load_persisted(self) -> dict:
        if self.persistence is None:
            return {}
        try:
            persisted = self.persistence.load_weights(self.settings.family, self.settings.profile)
        except Exception as e:
            logger.warning(f"Weight load failed, using defaults: {e}")
            return {}
        return clamp_weights(persisted)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.finish()
        return False
