from __future__ import annotations

from rich.console import Console

from trivia_quiz.quiz.models import (
    Difficulty,
    FormattedQuestion,
    Phase,
    QuestionResponse,
    SessionSnapshot,
)
from trivia_quiz.quiz.summary import (
    accuracy,
    render_questions,
    render_summary,
    score_line,
)


def _question(n: int) -> FormattedQuestion:
    return FormattedQuestion(
        question=f"Question {n}?",
        correct_answer=f"Right {n}",
        options=(f"Wrong {n}", f"Right {n}", f"Other {n}"),
    )


def _completed() -> SessionSnapshot:
    questions = (_question(1), _question(2), _question(3))
    responses = (
        QuestionResponse(0, "Question 1?", "Right 1", "Right 1", True),
        QuestionResponse(1, "Question 2?", "Right 2", "Wrong 2", False),
        QuestionResponse(2, "Question 3?", "Right 3", None, False, timed_out=True),
    )
    return SessionSnapshot(
        phase=Phase.COMPLETED,
        questions=questions,
        current_index=2,
        score=1,
        timer_seconds=0,
        question_seconds=15,
        difficulty=Difficulty.MEDIUM,
        user_answer=None,
        answer_locked=False,
        responses=responses,
    )


def _console() -> Console:
    return Console(record=True, width=120, color_system=None)


def test_score_line_and_accuracy():
    snap = _completed()
    assert score_line(snap) == "Your score: 1 / 3"
    assert accuracy(snap) == 1 / 3


def test_render_summary_lists_responses():
    console = _console()
    render_summary(console, _completed())
    text = console.export_text()

    assert "Quiz Completed!" in text
    assert "Medium" in text
    assert "33.3%" in text
    assert "Wrong 2" in text
    assert "(time up)" in text


def test_render_questions_reveal_marks_correct_option():
    console = _console()
    render_questions(console, [_question(1)], reveal=True)
    text = console.export_text()

    assert "Question 1?" in text
    assert "Right 1  ✓" in text
    assert "C" in text


def test_render_questions_handles_empty_list():
    console = _console()
    render_questions(console, [])
    assert "No questions available." in console.export_text()
