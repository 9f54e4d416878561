"""Turn raw provider records into display-ready questions."""

from __future__ import annotations

import html
import logging
import random
from collections.abc import Iterable, MutableSequence, Sequence
from typing import Any, Mapping, Optional, TypeVar

from .models import FormattedQuestion, RawQuestion

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_OPTIONS = 4
_FORMATTED_KEYS = {"question", "correct_answer", "incorrect_answers"}


class InsufficientOptions(ValueError):
    """Raised when a record cannot yield at least two distinct options."""


def decode_entities(text: object) -> str:
    """Expand HTML5 named and numeric character references."""

    if text is None:
        return ""
    return html.unescape(str(text))


def shuffle_in_place(
    items: MutableSequence[T], rng: Optional[random.Random] = None
) -> MutableSequence[T]:
    """Fisher-Yates shuffle: walk down from the last index swapping each
    slot with a uniformly chosen slot at or below it."""

    source = rng or random.SystemRandom()
    for i in range(len(items) - 1, 0, -1):
        j = source.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def build_options(
    correct_answer: str,
    incorrect_answers: Iterable[str],
    *,
    rng: Optional[random.Random] = None,
    max_options: int = MAX_OPTIONS,
) -> tuple[str, ...]:
    """Return a shuffled, duplicate-free option tuple.

    The correct answer appears exactly once. When the candidates exceed
    ``max_options`` the shuffled list is cut to length; if the cut drops the
    correct answer it takes the place of a random kept slot.
    """

    if max_options < 2:
        raise ValueError("max_options must be at least 2")

    candidates: list[str] = []
    seen = {correct_answer}
    for answer in incorrect_answers:
        if answer in seen:
            continue
        seen.add(answer)
        candidates.append(answer)
    candidates.append(correct_answer)

    if len(candidates) < 2:
        raise InsufficientOptions(
            f"Only {len(candidates)} distinct option(s) for answer "
            f"{correct_answer!r}"
        )

    source = rng or random.SystemRandom()
    shuffle_in_place(candidates, source)
    kept = candidates[:max_options]
    if correct_answer not in kept:
        kept[source.randrange(len(kept))] = correct_answer
    return tuple(kept)


def format_question(
    raw: RawQuestion,
    *,
    rng: Optional[random.Random] = None,
    max_options: int = MAX_OPTIONS,
) -> FormattedQuestion:
    """Decode and shuffle a single provider record."""

    correct = decode_entities(raw.get("correct_answer")).strip()
    if not correct:
        raise InsufficientOptions("Record has no correct answer")
    incorrect_field = raw.get("incorrect_answers")
    if not isinstance(incorrect_field, Sequence) or isinstance(
        incorrect_field, (str, bytes)
    ):
        raise InsufficientOptions("Record has no incorrect answer list")
    incorrect = [
        decoded
        for decoded in (decode_entities(item).strip() for item in incorrect_field)
        if decoded
    ]
    options = build_options(
        correct, incorrect, rng=rng, max_options=max_options
    )
    extra: dict[str, Any] = {
        key: value for key, value in raw.items() if key not in _FORMATTED_KEYS
    }
    return FormattedQuestion(
        question=decode_entities(raw.get("question")).strip(),
        correct_answer=correct,
        options=options,
        extra=extra,
    )


def format_questions(
    raw_questions: Iterable[Mapping[str, Any]],
    *,
    rng: Optional[random.Random] = None,
    max_options: int = MAX_OPTIONS,
) -> list[FormattedQuestion]:
    """Format every usable record, skipping degenerate ones."""

    source = rng or random.SystemRandom()
    formatted: list[FormattedQuestion] = []
    for position, raw in enumerate(raw_questions):
        try:
            formatted.append(
                format_question(raw, rng=source, max_options=max_options)
            )
        except InsufficientOptions as exc:
            logger.warning(
                "Skipping question %d: %s",
                position,
                exc,
                extra={"event": "question_skipped", "position": position},
            )
    return formatted
