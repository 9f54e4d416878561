"""HTTP client for the Open Trivia DB question endpoint."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

import requests

from .models import Difficulty, RawQuestion

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://opentdb.com/api.php"

# Open Trivia DB response codes.
_RESPONSE_OK = 0
_RESPONSE_NO_RESULTS = 1
_RESPONSE_MESSAGES = {
    2: "invalid parameter",
    3: "session token not found",
    4: "session token exhausted",
    5: "rate limit exceeded",
}


class TriviaProviderError(RuntimeError):
    """Base class for errors raised while retrieving questions."""


class FetchFailure(TriviaProviderError):
    """The provider could not be reached or answered with an error."""


class MalformedResponse(TriviaProviderError):
    """The provider answered but the payload has an unexpected shape."""


class TriviaProvider:
    """Fetch raw multiple-choice questions for a difficulty.

    ``http`` only needs a ``get(url, params=..., timeout=...)`` method
    returning a ``requests.Response``-like object, which lets tests supply a
    stub in place of a real ``requests.Session``.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        amount: int = 10,
        category: Optional[int] = 15,
        question_type: str = "multiple",
        timeout: float = 10.0,
        http: Any = None,
    ) -> None:
        self.base_url = base_url
        self.amount = amount
        self.category = category
        self.question_type = question_type
        self.timeout = timeout
        self._http = http if http is not None else requests.Session()

    def build_params(
        self, difficulty: Difficulty | str | None = None
    ) -> dict[str, str]:
        params = {"amount": str(self.amount)}
        if self.category is not None:
            params["category"] = str(self.category)
        params["type"] = self.question_type
        if difficulty:
            params["difficulty"] = Difficulty.from_value(difficulty).value
        return params

    def fetch_questions(
        self, difficulty: Difficulty | str | None = None
    ) -> list[RawQuestion]:
        """Return the validated ``results`` list for ``difficulty``.

        Raises:
            FetchFailure: transport errors, non-2xx status, undecodable
                bodies, or a provider error code.
            MalformedResponse: the body lacks a usable ``results`` list.
        """

        params = self.build_params(difficulty)
        logger.info(
            "Requesting questions",
            extra={"event": "fetch_start", "params": params},
        )
        try:
            response = self._http.get(
                self.base_url, params=params, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error(
                "Question request failed: %s",
                exc,
                extra={"event": "fetch_failed"},
            )
            raise FetchFailure(f"Could not fetch questions: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchFailure("Provider returned a non-JSON body") from exc

        results = parse_results(payload)
        logger.info(
            "Received %d question(s)",
            len(results),
            extra={"event": "fetch_done", "count": len(results)},
        )
        return results

    def close(self) -> None:
        closer = getattr(self._http, "close", None)
        if callable(closer):
            closer()


def parse_results(payload: object) -> list[RawQuestion]:
    """Validate an Open Trivia DB payload and return its records."""

    if not isinstance(payload, Mapping):
        raise MalformedResponse("Response body is not a JSON object")

    code = payload.get("response_code", _RESPONSE_OK)
    if isinstance(code, bool) or not isinstance(code, int):
        raise MalformedResponse("'response_code' must be an integer")
    if code == _RESPONSE_NO_RESULTS:
        return []
    if code != _RESPONSE_OK:
        reason = _RESPONSE_MESSAGES.get(code, "unknown error")
        raise FetchFailure(f"Provider returned code {code} ({reason})")

    if "results" not in payload:
        raise MalformedResponse("Response is missing 'results'")
    results = payload["results"]
    if not isinstance(results, list):
        raise MalformedResponse("'results' must be a list")
    for position, record in enumerate(results):
        if not isinstance(record, Mapping):
            raise MalformedResponse(
                f"Result {position} is not an object"
            )
        if "question" not in record or "correct_answer" not in record:
            raise MalformedResponse(
                f"Result {position} lacks question or correct_answer"
            )
    return list(results)
