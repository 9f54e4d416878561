"""Command handlers for ``trivia init``, ``trivia play`` and ``trivia preview``."""

from __future__ import annotations

import argparse
import logging
import random
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from ..config import (
    CONFIG_FILENAME,
    ConfigError,
    LoadResult,
    ProviderConfig,
    load_config,
    write_template,
)
from ..core import WorkspaceError, configure_logger, ensure_workspace
from .formatter import format_questions
from .models import Difficulty
from .provider import TriviaProvider, TriviaProviderError
from .summary import render_questions, render_summary
from .view.quiz import QuizApp

LOGGER_NAME = "trivia_quiz"
_DIFFICULTIES = [member.value for member in Difficulty]


def build_provider(
    cfg: ProviderConfig, *, amount: Optional[int] = None
) -> TriviaProvider:
    return TriviaProvider(
        base_url=cfg.base_url,
        amount=amount if amount is not None else cfg.amount,
        category=cfg.category,
        question_type=cfg.question_type,
        timeout=cfg.timeout_seconds,
    )


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to TRIVIA_QUIZ_CONFIG or "
            f"the workspace {CONFIG_FILENAME})."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used for config and logs.",
    )
    parser.add_argument(
        "--difficulty",
        choices=_DIFFICULTIES,
        type=str.lower,
        help="Question difficulty.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed the option shuffle for reproducible runs.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output to stderr as well as the log file.",
    )


def _load(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> tuple[LoadResult, logging.Logger]:
    try:
        result = load_config(
            config_path=args.config, workspace_path=args.workspace
        )
    except ConfigError as exc:
        parser.error(str(exc))
    log_cfg = result.config.logging
    logger, log_path = configure_logger(
        LOGGER_NAME,
        log_dir=result.layout.path_for("logs"),
        level=log_cfg.level,
        verbose=args.verbose or log_cfg.verbose,
    )
    logger.debug(
        "Configuration loaded",
        extra={
            "event": "config_loaded",
            "config_path": result.config_path,
            "log_path": log_path,
        },
    )
    return result, logger


def _rng(seed: Optional[int]) -> Optional[random.Random]:
    return random.Random(seed) if seed is not None else None


def play_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="trivia play",
        description="Play a timed multiple-choice trivia quiz in the terminal.",
    )
    _add_common(parser)
    parser.add_argument(
        "--no-summary",
        dest="summary",
        action="store_false",
        help="Skip the response table printed after a completed quiz.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    result, logger = _load(parser, args)
    cfg = result.config

    provider = build_provider(cfg.provider)
    app = QuizApp(
        provider,
        difficulty=args.difficulty or cfg.session.default_difficulty,
        question_seconds=cfg.session.question_seconds,
        reveal_delay=cfg.session.reveal_delay_seconds,
        max_options=cfg.session.max_options,
        rng=_rng(args.seed),
    )
    try:
        app.run()
    finally:
        app.session.close()
        provider.close()

    completed = app.last_completed
    if completed is not None and args.summary:
        render_summary(Console(), completed)
    logger.info(
        "Play session finished",
        extra={
            "event": "play_finished",
            "completed": completed is not None,
            "score": completed.score if completed else None,
        },
    )
    return 0


def preview_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="trivia preview",
        description="Fetch a batch of questions and print them formatted.",
    )
    _add_common(parser)
    parser.add_argument(
        "--amount",
        type=int,
        help="Number of questions to request (overrides config).",
    )
    parser.add_argument(
        "--reveal",
        action="store_true",
        help="Highlight the correct option for each question.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.amount is not None and not 1 <= args.amount <= 50:
        parser.error("--amount must be between 1 and 50.")
    result, logger = _load(parser, args)
    cfg = result.config

    provider = build_provider(cfg.provider, amount=args.amount)
    difficulty = args.difficulty or cfg.session.default_difficulty
    console = Console()
    try:
        raw = provider.fetch_questions(difficulty)
    except TriviaProviderError as exc:
        logger.error("Preview fetch failed: %s", exc)
        console.print(f"[red]Error:[/red] {exc}")
        return 1
    finally:
        provider.close()

    questions = format_questions(
        raw, rng=_rng(args.seed), max_options=cfg.session.max_options
    )
    render_questions(console, questions, reveal=args.reveal)
    return 0 if questions else 1


def init_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="trivia init",
        description=(
            "Create the trivia-quiz workspace and write the default config "
            "template."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help=(
            "Override the workspace root (defaults to TRIVIA_QUIZ_DATA_HOME "
            "or ~/.trivia-quiz-data)."
        ),
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        layout = ensure_workspace(path=args.workspace)
    except WorkspaceError as exc:
        parser.error(str(exc))

    target = layout.path_for("config") / CONFIG_FILENAME
    try:
        write_template(target, overwrite=args.force)
    except ConfigError as exc:
        print(f"{exc} (use --force to replace it)")
        return 1

    print(f"Workspace ready at {layout.home}")
    print(f"Wrote config template -> {target}")
    return 0
