from .formatter import (
    InsufficientOptions,
    build_options,
    decode_entities,
    format_question,
    format_questions,
    shuffle_in_place,
)
from .models import (
    Difficulty,
    ErrorKind,
    FormattedQuestion,
    Phase,
    QuestionResponse,
    SessionError,
    SessionSnapshot,
)
from .provider import (
    FetchFailure,
    MalformedResponse,
    TriviaProvider,
    TriviaProviderError,
    parse_results,
)
from .scheduler import ManualScheduler, Scheduler
from .session import LoadOutcome, QuizSession, QuizSessionError, run_inline

__all__ = [
    "InsufficientOptions",
    "build_options",
    "decode_entities",
    "format_question",
    "format_questions",
    "shuffle_in_place",
    "Difficulty",
    "ErrorKind",
    "FormattedQuestion",
    "Phase",
    "QuestionResponse",
    "SessionError",
    "SessionSnapshot",
    "FetchFailure",
    "MalformedResponse",
    "TriviaProvider",
    "TriviaProviderError",
    "parse_results",
    "ManualScheduler",
    "Scheduler",
    "LoadOutcome",
    "QuizSession",
    "QuizSessionError",
    "run_inline",
]
