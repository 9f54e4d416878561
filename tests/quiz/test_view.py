from __future__ import annotations

import random

import pytest

from trivia_quiz.quiz.models import Difficulty, Phase
from trivia_quiz.quiz.provider import TriviaProvider
from trivia_quiz.quiz.scheduler import ManualScheduler
from trivia_quiz.quiz.session import run_inline
from trivia_quiz.quiz.view import QuestionView, QuizApp, option_style
from trivia_quiz.quiz.view.quiz import (
    CompletedView,
    DifficultyView,
    LoadingView,
    TextualScheduler,
    render_key,
    stage_for,
)


@pytest.fixture
def clock() -> ManualScheduler:
    return ManualScheduler()


def _app(stub_http, clock, **kwargs) -> QuizApp:
    return QuizApp(
        TriviaProvider(http=stub_http),
        scheduler=clock,
        loader=run_inline,
        rng=random.Random(3),
        **kwargs,
    )


def _wrong(question) -> str:
    return next(o for o in question.options if o != question.correct_answer)


def test_pick_difficulty_and_start(stub_http, clock):
    stub_http.respond_with_questions(3)
    app = _app(stub_http, clock)

    assert app.start() is False
    assert app.pick_difficulty("bogus") is False
    assert app.pick_difficulty("hard") is True
    assert app.start() is True

    snap = app.session.snapshot()
    assert snap.phase is Phase.IN_PROGRESS
    assert snap.difficulty is Difficulty.HARD


def test_choose_option_by_position(stub_http, clock):
    stub_http.respond_with_questions(2)
    app = _app(stub_http, clock, difficulty="easy")
    app.start()
    question = app.session.snapshot().current
    correct_position = question.options.index(question.correct_answer)

    assert app.choose_option(99) is False
    assert app.choose_option(correct_position) is True
    assert app.choose_option(0) is False
    assert app.session.snapshot().score == 1


def test_choose_option_before_start_is_ignored(stub_http, clock):
    app = _app(stub_http, clock)
    assert app.choose_option(0) is False


def test_last_completed_is_recorded(stub_http, clock):
    stub_http.respond_with_questions(1)
    app = _app(stub_http, clock, difficulty="medium", reveal_delay=0.5)
    app.start()
    app.choose_option(0)
    clock.advance(0.5)

    assert app.last_completed is not None
    assert app.last_completed.phase is Phase.COMPLETED

    app.retry()
    assert app.session.phase is Phase.NOT_STARTED
    assert app.last_completed is not None


def test_option_style_marks_choice_and_answer(stub_http, clock):
    stub_http.respond_with_questions(1)
    app = _app(stub_http, clock, difficulty="easy")
    app.start()
    question = app.session.snapshot().current
    wrong = _wrong(question)

    before = app.session.snapshot()
    assert {option_style(before, o) for o in question.options} == {"idle"}

    app.session.submit_answer(wrong)
    after = app.session.snapshot()
    assert option_style(after, wrong) == "incorrect"
    assert option_style(after, question.correct_answer) == "correct"
    others = set(question.options) - {wrong, question.correct_answer}
    assert {option_style(after, o) for o in others} <= {"idle"}


def test_option_style_idle_without_question(stub_http, clock):
    snap = _app(stub_http, clock).session.snapshot()
    assert option_style(snap, "anything") == "idle"


def test_render_key_ignores_timer_ticks(stub_http, clock):
    stub_http.respond_with_questions(2)
    app = _app(stub_http, clock, difficulty="easy")
    app.start()
    first = render_key(app.session.snapshot())
    clock.advance(3)
    assert render_key(app.session.snapshot()) == first
    app.session.advance()
    assert render_key(app.session.snapshot()) != first


def test_stage_for_each_phase(stub_http, clock):
    stub_http.respond_with_questions(1)
    app = _app(stub_http, clock, difficulty="easy")
    assert isinstance(stage_for(app.session.snapshot()), DifficultyView)

    app.start()
    assert isinstance(stage_for(app.session.snapshot()), QuestionView)

    app.session.advance()
    assert isinstance(stage_for(app.session.snapshot()), CompletedView)


def test_stage_for_loading_error(stub_http, clock):
    stub_http.respond({"response_code": 1, "results": []})
    app = _app(stub_http, clock, difficulty="easy")
    app.start()
    snap = app.session.snapshot()
    assert snap.no_questions_available
    assert isinstance(stage_for(snap), LoadingView)


def test_question_view_timer_text(stub_http, clock):
    stub_http.respond_with_questions(1)
    app = _app(stub_http, clock, difficulty="easy", question_seconds=20)
    app.start()
    clock.advance(5)
    assert (
        QuestionView.timer_text(app.session.snapshot())
        == "Time Remaining: 15s"
    )


def test_textual_scheduler_wraps_app_timers():
    class _Timer:
        stopped = False

        def stop(self) -> None:
            self.stopped = True

    class _App:
        def __init__(self) -> None:
            self.calls = []
            self.timer = _Timer()

        def set_timer(self, delay, callback):
            self.calls.append((delay, callback))
            return self.timer

    host = _App()
    handle = TextualScheduler(host).call_later(1.0, print)
    handle.cancel()

    assert host.calls == [(1.0, print)]
    assert host.timer.stopped is True
