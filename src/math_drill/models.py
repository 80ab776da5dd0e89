"""Data classes for the arithmetic drill domain model."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class Family(str, Enum):
    SQUARES = "SQUARES"
    ADDITION = "ADDITION"
    SUBTRACTION = "SUBTRACTION"
    MULTIPLICATION = "MULTIPLICATION"
    DIVISION = "DIVISION"

    @property
    def is_unary(self) -> bool:
        return self is Family.SQUARES

    @property
    def symbol(self) -> str:
        return {
            Family.SQUARES: "²",
            Family.ADDITION: "+",
            Family.SUBTRACTION: "−",
            Family.MULTIPLICATION: "×",
            Family.DIVISION: "÷",
        }[self]


@dataclass
class DrillSettings:
    family: Family = Family.ADDITION
    min: int = 1
    max: int = 20
    min2: int = 1
    max2: int = 10
    duration_seconds: int = 60
    adaptive_weighting_enabled: bool = True
    profile_is_simplified: bool = False
    swap_subtraction_when_simplified: bool = True

    @property
    def profile(self) -> str:
        """Key under which this learner's weights are partitioned."""
        return "simplified" if self.profile_is_simplified else "standard"


@dataclass(frozen=True)
class Question:
    family: Family
    operand1: int
    correct_answer: int
    operand2: Optional[int] = None
    is_retry: bool = False

    def as_retry(self) -> "Question":
        return replace(self, is_retry=True)

    def same_operands(self, other: Optional["Question"]) -> bool:
        if other is None:
            return False
        return self.operand1 == other.operand1 and self.operand2 == other.operand2

    def text(self) -> str:
        if self.family is Family.SQUARES:
            return f"{self.operand1}²"
        return f"{self.operand1} {self.family.symbol} {self.operand2}"


@dataclass(frozen=True)
class AnswerRecord:
    question: Question
    submitted_answer: int
    correct: bool
    elapsed_ms: int


@dataclass
class SessionStats:
    total_questions: int
    correct: int
    score: int
    history: list = field(default_factory=list)
    started_at: Optional[str] = None
    ended_at: Optional[str] = None

    @property
    def accuracy(self) -> int:
        if self.total_questions == 0:
            return 0
        return round(self.correct / self.total_questions * 100)

    @property
    def mistakes(self) -> list:
        return [r for r in self.history if not r.correct]


@dataclass
class SessionRecord:
    id: int
    played_at: str
    family: Family
    score: int
    total: int
    correct: int
    is_simplified: bool = False
