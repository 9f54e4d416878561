"""Quiz session controller.

``QuizSession`` owns the lifecycle of one quiz attempt:

    not_started -> loading -> in_progress -> completed
          ^____________________ retry() ___________|

State is private and only changes through the public operations. Renderers
read :class:`~trivia_quiz.quiz.models.SessionSnapshot` values, either by
calling :meth:`QuizSession.snapshot` or by subscribing to change
notifications.

Every scheduled callback (the one second tick, the post-answer reveal delay,
and the pending question load) carries the epoch that was current when it
was scheduled. Leaving a question or retrying bumps the epoch and cancels
outstanding handles, so a late callback can never act on a newer question and
each question boundary is crossed exactly once.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from .formatter import MAX_OPTIONS, format_questions
from .models import (
    Difficulty,
    ErrorKind,
    FormattedQuestion,
    Phase,
    QuestionResponse,
    RawQuestion,
    SessionError,
    SessionSnapshot,
)
from .provider import MalformedResponse, TriviaProvider, TriviaProviderError
from .scheduler import Cancellable, Scheduler

logger = logging.getLogger(__name__)

QUESTION_SECONDS = 15
REVEAL_DELAY_SECONDS = 2.0
TICK_SECONDS = 1.0
NO_QUESTIONS_MESSAGE = "No questions available."

Listener = Callable[[SessionSnapshot], None]


class QuizSessionError(RuntimeError):
    """Raised when an operation is not valid for the current session."""


@dataclass(frozen=True)
class LoadOutcome:
    """Result of a question fetch delivered back to the session."""

    questions: Optional[list[RawQuestion]] = None
    error: Optional[TriviaProviderError] = None


FetchJob = Callable[[], list[RawQuestion]]
Deliver = Callable[[LoadOutcome], None]
Loader = Callable[[FetchJob, Deliver], None]


def run_inline(job: FetchJob, deliver: Deliver) -> None:
    """Run the fetch on the calling thread and deliver the outcome."""

    try:
        questions = job()
    except TriviaProviderError as exc:
        deliver(LoadOutcome(error=exc))
    else:
        deliver(LoadOutcome(questions=questions))


class QuizSession:
    def __init__(
        self,
        provider: TriviaProvider,
        scheduler: Scheduler,
        *,
        loader: Loader = run_inline,
        rng: Optional[random.Random] = None,
        difficulty: Difficulty | str | None = None,
        question_seconds: int = QUESTION_SECONDS,
        reveal_delay: float = REVEAL_DELAY_SECONDS,
        max_options: int = MAX_OPTIONS,
    ) -> None:
        if question_seconds <= 0:
            raise ValueError("question_seconds must be positive")
        if reveal_delay < 0:
            raise ValueError("reveal_delay must be non-negative")
        self._provider = provider
        self._scheduler = scheduler
        self._loader = loader
        self._rng = rng or random.SystemRandom()
        self._question_seconds = question_seconds
        self._reveal_delay = reveal_delay
        self._max_options = max_options
        self._difficulty = (
            Difficulty.from_value(difficulty) if difficulty else None
        )
        self._listeners: list[Listener] = []

        self._phase = Phase.NOT_STARTED
        self._questions: list[FormattedQuestion] = []
        self._index = 0
        self._score = 0
        self._timer = question_seconds
        self._user_answer: Optional[str] = None
        self._locked = False
        self._error: Optional[SessionError] = None
        self._responses: list[QuestionResponse] = []

        self._epoch = 0
        self._tick_handle: Optional[Cancellable] = None
        self._reveal_handle: Optional[Cancellable] = None

    # Read side -----------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self._phase,
            questions=tuple(self._questions),
            current_index=self._index,
            score=self._score,
            timer_seconds=self._timer,
            question_seconds=self._question_seconds,
            difficulty=self._difficulty,
            user_answer=self._user_answer,
            answer_locked=self._locked,
            error=self._error,
            responses=tuple(self._responses),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every change."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # Commands ------------------------------------------------------------

    def select_difficulty(self, difficulty: Difficulty | str) -> Difficulty:
        if self._phase is not Phase.NOT_STARTED:
            raise QuizSessionError(
                "Difficulty can only change before the quiz starts"
            )
        self._difficulty = self._parse_difficulty(difficulty)
        self._notify()
        return self._difficulty

    def start_quiz(self, difficulty: Difficulty | str | None = None) -> None:
        """Begin loading questions for ``difficulty``.

        The fetch runs through the configured loader. Provider failures do
        not raise; they leave the session in ``loading`` with ``error`` set.
        """

        if self._phase is not Phase.NOT_STARTED:
            raise QuizSessionError(
                f"Cannot start a quiz while {self._phase.value}"
            )
        chosen = difficulty if difficulty is not None else self._difficulty
        if chosen is None:
            raise QuizSessionError("Select a difficulty before starting")
        self._difficulty = self._parse_difficulty(chosen)

        ticket = self._next_epoch()
        self._error = None
        self._set_phase(Phase.LOADING)
        self._notify()

        selected = self._difficulty
        self._loader(
            lambda: self._provider.fetch_questions(selected),
            partial(self._finish_loading, ticket),
        )

    def submit_answer(self, option: str) -> bool:
        """Lock in ``option`` for the current question.

        Returns ``False`` without touching state when no question is
        showing or an answer is already locked.
        """

        if self._phase is not Phase.IN_PROGRESS or self._locked:
            return False
        question = self._questions[self._index]
        correct = question.is_correct(option)
        self._user_answer = option
        self._locked = True
        if correct:
            self._score += 1
        self._responses.append(
            QuestionResponse(
                index=self._index,
                question=question.question,
                correct_answer=question.correct_answer,
                selected=option,
                is_correct=correct,
            )
        )
        logger.debug(
            "Answer submitted",
            extra={
                "event": "answer_submitted",
                "index": self._index,
                "correct": correct,
                "score": self._score,
            },
        )
        self._reveal_handle = self._scheduler.call_later(
            self._reveal_delay,
            partial(self._advance_from, self._epoch, "answered"),
        )
        self._notify()
        return True

    def advance(self) -> bool:
        """Leave the current question now."""

        return self._advance_from(self._epoch, "manual")

    def tick(self) -> bool:
        """Count the timer down by one second.

        Reaching zero advances once; the reset that follows means later
        ticks never see a zero timer for the same question.
        """

        if self._phase is not Phase.IN_PROGRESS or self._timer <= 0:
            return False
        self._timer -= 1
        if self._timer == 0:
            logger.debug(
                "Question timed out",
                extra={"event": "question_timeout", "index": self._index},
            )
            self._advance_from(self._epoch, "timeout")
        else:
            self._notify()
        return True

    def retry(self) -> None:
        """Return to ``not_started`` keeping the chosen difficulty."""

        self._next_epoch()
        self._questions = []
        self._index = 0
        self._score = 0
        self._timer = self._question_seconds
        self._user_answer = None
        self._locked = False
        self._error = None
        self._responses = []
        self._set_phase(Phase.NOT_STARTED)
        self._notify()

    def close(self) -> None:
        """Cancel anything still scheduled on the host clock."""

        self._next_epoch()

    # Internals -----------------------------------------------------------

    def _parse_difficulty(self, value: Difficulty | str) -> Difficulty:
        try:
            return Difficulty.from_value(value)
        except ValueError as exc:
            raise QuizSessionError(str(exc)) from exc

    def _next_epoch(self) -> int:
        for handle in (self._tick_handle, self._reveal_handle):
            if handle is not None:
                handle.cancel()
        self._tick_handle = None
        self._reveal_handle = None
        self._epoch += 1
        return self._epoch

    def _set_phase(self, phase: Phase) -> None:
        if phase is self._phase:
            return
        logger.info(
            "Session %s -> %s",
            self._phase.value,
            phase.value,
            extra={
                "event": "phase_change",
                "from_phase": self._phase,
                "to_phase": phase,
                "difficulty": self._difficulty,
            },
        )
        self._phase = phase

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    def _finish_loading(self, ticket: int, outcome: LoadOutcome) -> None:
        if ticket != self._epoch or self._phase is not Phase.LOADING:
            logger.debug(
                "Discarding stale question load",
                extra={"event": "load_discarded", "ticket": ticket},
            )
            return

        if outcome.error is not None:
            kind = (
                ErrorKind.MALFORMED_RESPONSE
                if isinstance(outcome.error, MalformedResponse)
                else ErrorKind.FETCH_FAILURE
            )
            self._error = SessionError(kind, str(outcome.error))
            logger.error(
                "Question load failed: %s",
                outcome.error,
                extra={"event": "load_failed", "kind": kind},
            )
            self._notify()
            return

        questions = format_questions(
            outcome.questions or [],
            rng=self._rng,
            max_options=self._max_options,
        )
        if not questions:
            self._error = SessionError(
                ErrorKind.NO_QUESTIONS, NO_QUESTIONS_MESSAGE
            )
            logger.warning(
                "Provider returned no usable questions",
                extra={"event": "load_empty"},
            )
            self._notify()
            return

        self._questions = questions
        self._index = 0
        self._score = 0
        self._timer = self._question_seconds
        self._user_answer = None
        self._locked = False
        self._responses = []
        self._set_phase(Phase.IN_PROGRESS)
        self._arm_tick()
        self._notify()

    def _arm_tick(self) -> None:
        self._tick_handle = self._scheduler.call_later(
            TICK_SECONDS, partial(self._on_tick_due, self._epoch)
        )

    def _on_tick_due(self, epoch: int) -> None:
        if epoch != self._epoch:
            return
        self.tick()
        if epoch == self._epoch and self._phase is Phase.IN_PROGRESS:
            self._arm_tick()

    def _advance_from(self, epoch: int, reason: str) -> bool:
        if epoch != self._epoch or self._phase is not Phase.IN_PROGRESS:
            logger.debug(
                "Ignoring stale advance",
                extra={"event": "advance_ignored", "reason": reason},
            )
            return False

        if not self._locked:
            question = self._questions[self._index]
            self._responses.append(
                QuestionResponse(
                    index=self._index,
                    question=question.question,
                    correct_answer=question.correct_answer,
                    selected=None,
                    is_correct=False,
                    timed_out=reason == "timeout",
                )
            )

        self._next_epoch()
        logger.debug(
            "Advancing from question %d",
            self._index,
            extra={"event": "advance", "reason": reason, "index": self._index},
        )
        if self._index >= len(self._questions) - 1:
            self._set_phase(Phase.COMPLETED)
            self._notify()
            return True

        self._index += 1
        self._timer = self._question_seconds
        self._user_answer = None
        self._locked = False
        self._arm_tick()
        self._notify()
        return True

