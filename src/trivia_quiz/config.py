"""Configuration for trivia-quiz.

Settings come from a TOML file merged over built-in defaults. Unknown keys
are rejected so typos surface early instead of being silently ignored.
Lookup order for the file is ``--config``, then ``TRIVIA_QUIZ_CONFIG``, then
``<workspace>/config/trivia_quiz.toml``; a missing default file simply means
"use the defaults".
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - should never happen
    raise RuntimeError("Python 3.11+ required for tomllib support") from exc

from dotenv import load_dotenv

from .core import workspace as workspace_mod
from .quiz.models import Difficulty

CONFIG_FILENAME = "trivia_quiz.toml"
CONFIG_ENV = "TRIVIA_QUIZ_CONFIG"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class ProviderConfig:
    base_url: str
    amount: int
    category: Optional[int]
    question_type: str
    timeout_seconds: float


@dataclass(frozen=True)
class SessionConfig:
    question_seconds: int
    reveal_delay_seconds: float
    max_options: int
    default_difficulty: Optional[Difficulty]


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizConfig:
    provider: ProviderConfig
    session: SessionConfig
    logging: LoggingConfig


@dataclass(frozen=True)
class LoadResult:
    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


_DEFAULTS: Dict[str, Any] = {
    "provider": {
        "base_url": "https://opentdb.com/api.php",
        "amount": 10,
        "category": 15,
        "type": "multiple",
        "timeout_seconds": 10,
    },
    "session": {
        "question_seconds": 15,
        "reveal_delay_seconds": 2.0,
        "max_options": 4,
        "default_difficulty": "",
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}

_CONFIG_TEMPLATE = """
# trivia-quiz configuration

[provider]
# Open Trivia DB endpoint and query parameters.
base_url = "https://opentdb.com/api.php"
amount = 10
# Category 15 is "Entertainment: Video Games". Set to 0 for any category.
category = 15
type = "multiple"
timeout_seconds = 10

[session]
question_seconds = 15
reveal_delay_seconds = 2.0
# Options shown per question (2-4).
max_options = 4
# "easy", "medium", "hard" or "" to choose in the app.
default_difficulty = ""

[logging]
level = "INFO"
verbose = false
"""


def default_tree() -> Dict[str, Any]:
    return copy.deepcopy(_DEFAULTS)


def config_template() -> str:
    return _CONFIG_TEMPLATE.strip() + "\n"


def load_config(
    *,
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Resolve the workspace, read the TOML file and validate it."""

    if env is None:
        load_dotenv()
        env = os.environ

    try:
        layout = workspace_mod.ensure_workspace(env=env, path=workspace_path)
    except workspace_mod.WorkspaceError as exc:
        raise ConfigError(str(exc)) from exc

    path, explicit = _resolve_config_path(
        config_path=config_path,
        env=env,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    tree = default_tree()
    loaded: Optional[Path] = None
    if path.exists():
        _merge_dict(tree, _load_toml(path))
        loaded = path
    elif explicit:
        raise ConfigError(f"Config file not found: {path}")

    return LoadResult(config=build_config(tree), layout=layout, config_path=loaded)


def build_config(tree: Mapping[str, Any]) -> QuizConfig:
    for name in ("provider", "session", "logging"):
        if not isinstance(tree.get(name), Mapping):
            raise ConfigError(f"{name} table must be a mapping.")
    return QuizConfig(
        provider=_build_provider(tree["provider"]),
        session=_build_session(tree["session"]),
        logging=_build_logging(tree["logging"]),
    )


def write_template(
    path: Path, *, overwrite: bool = False, mode: int = 0o600
) -> Path:
    """Write the default template to ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise ConfigError(f"Config already exists: {path}")
    path.write_text(config_template(), encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:
        pass
    return path


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env: Mapping[str, str],
    default_path: Path,
) -> tuple[Path, bool]:
    if config_path is not None:
        return config_path.expanduser().resolve(), True
    override = (env.get(CONFIG_ENV) or "").strip()
    if override:
        return Path(override).expanduser().resolve(), True
    return default_path, False


def _load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse config TOML: {exc}") from exc


def _merge_dict(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise ConfigError(f"Unknown configuration key '{dotted}'.")
        if isinstance(base[key], MutableMapping):
            if not isinstance(value, Mapping):
                raise ConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted, type(value).__name__
                    )
                )
            _merge_dict(base[key], value, path=f"{dotted}.")
        else:
            base[key] = value


def _require_int_range(
    value: Any, *, field: str, min_value: int, max_value: int
) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"'{field}' must be an integer.")
    if not (min_value <= value <= max_value):
        raise ConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return value


def _require_number(value: Any, *, field: str, min_value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number.")
    if value < min_value:
        raise ConfigError(f"'{field}' must be at least {min_value}.")
    return float(value)


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{field}' must be a boolean.")
    return value


def _build_provider(section: Mapping[str, Any]) -> ProviderConfig:
    base_url = _require_string(section.get("base_url"), field="provider.base_url")
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError("'provider.base_url' must be an http(s) URL.")
    category = _require_int_range(
        section.get("category"),
        field="provider.category",
        min_value=0,
        max_value=1000,
    )
    return ProviderConfig(
        base_url=base_url,
        amount=_require_int_range(
            section.get("amount"),
            field="provider.amount",
            min_value=1,
            max_value=50,
        ),
        category=category or None,
        question_type=_require_string(section.get("type"), field="provider.type"),
        timeout_seconds=_require_number(
            section.get("timeout_seconds"),
            field="provider.timeout_seconds",
            min_value=0.1,
        ),
    )


def _build_session(section: Mapping[str, Any]) -> SessionConfig:
    raw_difficulty = section.get("default_difficulty")
    if raw_difficulty is None or raw_difficulty == "":
        difficulty = None
    elif isinstance(raw_difficulty, str):
        try:
            difficulty = Difficulty.from_value(raw_difficulty)
        except ValueError as exc:
            raise ConfigError(f"session.default_difficulty: {exc}") from exc
    else:
        raise ConfigError("'session.default_difficulty' must be a string.")
    return SessionConfig(
        question_seconds=_require_int_range(
            section.get("question_seconds"),
            field="session.question_seconds",
            min_value=1,
            max_value=600,
        ),
        reveal_delay_seconds=_require_number(
            section.get("reveal_delay_seconds"),
            field="session.reveal_delay_seconds",
            min_value=0.0,
        ),
        max_options=_require_int_range(
            section.get("max_options"),
            field="session.max_options",
            min_value=2,
            max_value=4,
        ),
        default_difficulty=difficulty,
    )


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = _require_string(section.get("level"), field="logging.level").upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(
            "logging.level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    return LoggingConfig(
        level=level,
        verbose=_require_bool(section.get("verbose"), field="logging.verbose"),
    )
