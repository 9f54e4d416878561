from __future__ import annotations

import logging
import random
from typing import Optional

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.timer import Timer
from textual.widget import Widget
from textual.widgets import Button, Footer, ProgressBar, Static

from ..models import Difficulty, Phase, SessionSnapshot
from ..provider import TriviaProvider, TriviaProviderError
from ..scheduler import Callback, Scheduler
from ..session import (
    Deliver,
    FetchJob,
    LoadOutcome,
    Loader,
    QuizSession,
    QuizSessionError,
)
from ..summary import score_line

logger = logging.getLogger(__name__)


class _TimerHandle:
    def __init__(self, timer: Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()


class TextualScheduler:
    """Scheduler backed by the app's own timers, so callbacks run on the
    UI thread."""

    def __init__(self, app: App) -> None:
        self._app = app

    def call_later(self, delay: float, callback: Callback) -> _TimerHandle:
        return _TimerHandle(self._app.set_timer(delay, callback))


def option_style(snapshot: SessionSnapshot, option: str) -> str:
    """CSS class for an option button given the session state.

    The picked option turns green or red; once an answer is locked the
    correct option is always shown green.
    """

    question = snapshot.current
    if question is None:
        return "idle"
    if snapshot.user_answer is not None and option == snapshot.user_answer:
        return "correct" if option == question.correct_answer else "incorrect"
    if snapshot.answer_locked and option == question.correct_answer:
        return "correct"
    return "idle"


def render_key(snapshot: SessionSnapshot) -> tuple[object, ...]:
    """Values that require rebuilding the stage when they change.

    Timer ticks are excluded; they only update the countdown widgets.
    """

    return (
        snapshot.phase,
        snapshot.current_index,
        snapshot.answer_locked,
        snapshot.difficulty,
        snapshot.error,
    )


class QuizApp(App):
    CSS_PATH = None
    CSS = """
#stage { align: center middle; }
.card { width: 72; height: auto; padding: 1 2; border: round $accent; }
.title { text-style: bold; }
#options Button { width: 100%; margin: 0 0 1 0; }
#options Button.correct { background: $success; color: black; }
#options Button.incorrect { background: $error; color: white; }
#difficulties Button.selected { background: $accent; color: black; }
#error { color: $error; }
"""
    BINDINGS = [
        ("1", "choose_option(0)", "Option 1"),
        ("2", "choose_option(1)", "Option 2"),
        ("3", "choose_option(2)", "Option 3"),
        ("4", "choose_option(3)", "Option 4"),
        ("e", "pick_difficulty('easy')", "Easy"),
        ("m", "pick_difficulty('medium')", "Medium"),
        ("h", "pick_difficulty('hard')", "Hard"),
        ("s", "start", "Start"),
        ("r", "retry", "Retry"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        provider: TriviaProvider,
        *,
        difficulty: Difficulty | str | None = None,
        question_seconds: int = 15,
        reveal_delay: float = 2.0,
        max_options: int = 4,
        scheduler: Optional[Scheduler] = None,
        loader: Optional[Loader] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__()
        self.session = QuizSession(
            provider,
            scheduler or TextualScheduler(self),
            loader=loader or self._load_in_worker,
            rng=rng,
            difficulty=difficulty,
            question_seconds=question_seconds,
            reveal_delay=reveal_delay,
            max_options=max_options,
        )
        self.last_completed: Optional[SessionSnapshot] = None
        self._rendered: Optional[tuple[object, ...]] = None
        self.session.subscribe(self._on_session_change)

    def compose(self) -> ComposeResult:
        snapshot = self.session.snapshot()
        self._rendered = render_key(snapshot)
        with Container(id="stage"):
            yield stage_for(snapshot)
        yield Footer()

    # Pure helpers (usable without running the App) -----------------------

    def choose_option(self, position: int) -> bool:
        question = self.session.snapshot().current
        if question is None or not 0 <= position < len(question.options):
            return False
        return self.session.submit_answer(question.options[position])

    def pick_difficulty(self, value: str) -> bool:
        try:
            self.session.select_difficulty(value)
        except QuizSessionError:
            return False
        return True

    def start(self) -> bool:
        try:
            self.session.start_quiz()
        except QuizSessionError as exc:
            logger.info("Start ignored: %s", exc)
            return False
        return True

    def retry(self) -> None:
        self.session.retry()

    # Actions -------------------------------------------------------------

    def action_choose_option(self, position: int) -> None:
        self.choose_option(position)

    def action_pick_difficulty(self, value: str) -> None:
        self.pick_difficulty(value)

    def action_start(self) -> None:
        self.start()

    def action_retry(self) -> None:
        if self.session.phase in (Phase.COMPLETED, Phase.LOADING):
            self.retry()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = event.button.id or ""
        if bid.startswith("option-"):
            self.choose_option(int(bid.rsplit("-", 1)[-1]))
        elif bid.startswith("difficulty-"):
            self.pick_difficulty(bid.split("-", 1)[1])
        elif bid == "start":
            self.start()
        elif bid == "retry":
            self.retry()

    # Session plumbing ----------------------------------------------------

    def _load_in_worker(self, job: FetchJob, deliver: Deliver) -> None:
        def _work() -> None:
            try:
                outcome = LoadOutcome(questions=job())
            except TriviaProviderError as exc:
                outcome = LoadOutcome(error=exc)
            self.call_from_thread(deliver, outcome)

        self.run_worker(_work, thread=True, exclusive=True, group="fetch")

    def _on_session_change(self, snapshot: SessionSnapshot) -> None:
        if snapshot.phase is Phase.COMPLETED:
            self.last_completed = snapshot
        if not self.is_running:
            return
        key = render_key(snapshot)
        if key != self._rendered:
            self._rendered = key
            stage = self.query_one("#stage", Container)
            stage.remove_children()
            stage.mount(stage_for(snapshot))
            return
        for view in self.query(QuestionView):
            view.update_timer(snapshot)


def stage_for(snapshot: SessionSnapshot) -> Widget:
    if snapshot.phase is Phase.NOT_STARTED:
        return DifficultyView(snapshot)
    if snapshot.phase is Phase.LOADING:
        return LoadingView(snapshot)
    if snapshot.phase is Phase.COMPLETED:
        return CompletedView(snapshot)
    return QuestionView(snapshot)


class DifficultyView(Widget):
    def __init__(self, snapshot: SessionSnapshot) -> None:
        super().__init__(classes="card")
        self.snapshot = snapshot

    def compose(self) -> ComposeResult:
        yield Static("Select Difficulty:", classes="title")
        with Horizontal(id="difficulties"):
            for difficulty in Difficulty:
                button = Button(
                    difficulty.label, id=f"difficulty-{difficulty.value}"
                )
                if difficulty is self.snapshot.difficulty:
                    button.add_class("selected")
                yield button
        yield Button(
            "Start Quiz",
            id="start",
            variant="primary",
            disabled=self.snapshot.difficulty is None,
        )


class LoadingView(Widget):
    def __init__(self, snapshot: SessionSnapshot) -> None:
        super().__init__(classes="card")
        self.snapshot = snapshot

    def compose(self) -> ComposeResult:
        error = self.snapshot.error
        if error is None:
            yield Static("Loading...", id="loading")
            return
        yield Static(error.message, id="error")
        yield Button("Back", id="retry")


class QuestionView(Widget):
    """One question with its options and the countdown."""

    def __init__(self, snapshot: SessionSnapshot) -> None:
        super().__init__(classes="card")
        self.snapshot = snapshot

    def compose(self) -> ComposeResult:
        question = self.snapshot.current
        if question is None:
            return
        yield Static(
            f"Question {self.snapshot.current_index + 1}"
            f" / {self.snapshot.total_questions}",
            classes="title",
        )
        yield Static(question.question, id="question")
        with Vertical(id="options"):
            for position, option in enumerate(question.options):
                button = Button(
                    option,
                    id=f"option-{position}",
                    disabled=self.snapshot.answer_locked,
                )
                style = option_style(self.snapshot, option)
                if style != "idle":
                    button.add_class(style)
                yield button
        yield Static(self.timer_text(self.snapshot), id="timer")
        bar = ProgressBar(
            total=self.snapshot.question_seconds,
            show_eta=False,
            show_percentage=False,
            id="time-bar",
        )
        bar.progress = self.snapshot.timer_seconds
        yield bar

    @staticmethod
    def timer_text(snapshot: SessionSnapshot) -> str:
        return f"Time Remaining: {snapshot.timer_seconds}s"

    def update_timer(self, snapshot: SessionSnapshot) -> None:
        self.snapshot = snapshot
        self.query_one("#timer", Static).update(self.timer_text(snapshot))
        self.query_one("#time-bar", ProgressBar).update(
            progress=snapshot.timer_seconds
        )


class CompletedView(Widget):
    def __init__(self, snapshot: SessionSnapshot) -> None:
        super().__init__(classes="card")
        self.snapshot = snapshot

    def compose(self) -> ComposeResult:
        yield Static("Quiz Completed!", classes="title")
        yield Static(score_line(self.snapshot), id="score")
        yield Button("Retry Quiz", id="retry", variant="primary")
