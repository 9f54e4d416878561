"""Rich renderers for question previews and end-of-quiz summaries."""

from __future__ import annotations

from collections.abc import Sequence
from string import ascii_uppercase

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import FormattedQuestion, SessionSnapshot


def score_line(snapshot: SessionSnapshot) -> str:
    return f"Your score: {snapshot.score} / {snapshot.total_questions}"


def accuracy(snapshot: SessionSnapshot) -> float:
    if not snapshot.total_questions:
        return 0.0
    return snapshot.score / snapshot.total_questions


def render_summary(console: Console, snapshot: SessionSnapshot) -> None:
    """Print the score overview and a per-question response table."""

    console.print()
    console.rule(Text("Quiz Completed!", style="bold magenta"))

    answered = sum(
        1 for response in snapshot.responses if response.selected is not None
    )
    timed_out = sum(1 for response in snapshot.responses if response.timed_out)
    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    if snapshot.difficulty is not None:
        overview.add_row("Difficulty", snapshot.difficulty.label)
    overview.add_row("Questions", str(snapshot.total_questions))
    overview.add_row("Answered", str(answered))
    overview.add_row("Timed out", str(timed_out))
    overview.add_row("Correct", str(snapshot.score))
    overview.add_row("Accuracy", f"{accuracy(snapshot) * 100:.1f}%")
    console.print(overview)

    if not snapshot.responses:
        return

    table = Table(title="Responses", box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right")
    table.add_column("Question", overflow="fold")
    table.add_column("Your answer")
    table.add_column("Correct answer")
    table.add_column("Result", justify="center")
    for response in snapshot.responses:
        if response.selected is not None:
            yours = response.selected
        elif response.timed_out:
            yours = "(time up)"
        else:
            yours = "-"
        table.add_row(
            str(response.index + 1),
            response.question,
            yours,
            response.correct_answer,
            "✅" if response.is_correct else "❌",
        )
    console.print(table)


def render_questions(
    console: Console,
    questions: Sequence[FormattedQuestion],
    *,
    reveal: bool = False,
) -> None:
    """Print formatted questions, optionally marking the correct option."""

    if not questions:
        console.print(Text("No questions available.", style="yellow"))
        return
    for number, question in enumerate(questions, start=1):
        console.rule(
            Text.assemble(
                (f"Question {number}", "bold cyan"),
                (f" / {len(questions)}", "dim"),
            )
        )
        console.print(Text(question.question, style="bold"))
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Option")
        for key, option in zip(ascii_uppercase, question.options):
            text = Text(option)
            if reveal and option == question.correct_answer:
                text.stylize("bold green")
                text.append("  ✓", style="green")
            table.add_row(key, text)
        console.print(table)
