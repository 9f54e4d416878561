"""Data structures shared by the quiz session, formatter and views."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

RawQuestion = Mapping[str, Any]


class Difficulty(Enum):
    """Question difficulty accepted by the trivia provider."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def from_value(cls, value: "Difficulty | str") -> "Difficulty":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown difficulty '{value}'. Expected one of: {expected}."
        )

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Phase(Enum):
    """Lifecycle stage of a quiz session."""

    NOT_STARTED = "not_started"
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ErrorKind(Enum):
    FETCH_FAILURE = "fetch_failure"
    MALFORMED_RESPONSE = "malformed_response"
    NO_QUESTIONS = "no_questions"


@dataclass(frozen=True)
class FormattedQuestion:
    """Display-ready question with decoded text and shuffled options."""

    question: str
    correct_answer: str
    options: tuple[str, ...]
    extra: Mapping[str, Any] = field(default_factory=dict)

    def is_correct(self, option: str | None) -> bool:
        return option is not None and option == self.correct_answer


@dataclass(frozen=True)
class SessionError:
    """Error surfaced to the view while the session sits in Loading."""

    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class QuestionResponse:
    """Outcome of a single question, recorded when it is left."""

    index: int
    question: str
    correct_answer: str
    selected: str | None
    is_correct: bool
    timed_out: bool = False


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of session state handed to renderers."""

    phase: Phase
    questions: tuple[FormattedQuestion, ...]
    current_index: int
    score: int
    timer_seconds: int
    question_seconds: int
    difficulty: Difficulty | None
    user_answer: str | None
    answer_locked: bool
    error: SessionError | None = None
    responses: tuple[QuestionResponse, ...] = ()

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> FormattedQuestion | None:
        if self.phase is not Phase.IN_PROGRESS:
            return None
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def no_questions_available(self) -> bool:
        return self.error is not None and self.error.kind is ErrorKind.NO_QUESTIONS

    @property
    def time_fraction(self) -> float:
        if self.question_seconds <= 0:
            return 0.0
        return self.timer_seconds / self.question_seconds
