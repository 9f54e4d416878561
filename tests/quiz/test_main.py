from __future__ import annotations

import logging

import pytest
import requests

from trivia_quiz.config import CONFIG_FILENAME, ProviderConfig
from trivia_quiz.quiz import _main
from trivia_quiz.quiz.models import Difficulty, Phase, SessionSnapshot
from trivia_quiz.quiz.provider import TriviaProvider

_TEST_LOGGER = "trivia_quiz_test.main"


@pytest.fixture(autouse=True)
def _isolated_logger(monkeypatch):
    monkeypatch.setattr(_main, "LOGGER_NAME", _TEST_LOGGER)
    yield
    logger = logging.getLogger(_TEST_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def patched_provider(monkeypatch, stub_http):
    built = {}

    def fake_build(cfg, *, amount=None):
        built["cfg"] = cfg
        built["amount"] = amount
        return TriviaProvider(
            base_url=cfg.base_url,
            amount=amount or cfg.amount,
            http=stub_http,
        )

    monkeypatch.setattr(_main, "build_provider", fake_build)
    return built


def test_init_writes_template_once(tmp_path, capsys):
    ws = tmp_path / "ws"

    assert _main.init_main(["--workspace", str(ws)]) == 0
    target = ws / "config" / CONFIG_FILENAME
    assert target.exists()
    assert str(target) in capsys.readouterr().out

    target.write_text("# mine\n", encoding="utf-8")
    assert _main.init_main(["--workspace", str(ws)]) == 1
    assert "--force" in capsys.readouterr().out
    assert target.read_text(encoding="utf-8") == "# mine\n"

    assert _main.init_main(["--workspace", str(ws), "--force"]) == 0
    assert "[session]" in target.read_text(encoding="utf-8")


def test_build_provider_uses_config_values():
    cfg = ProviderConfig(
        base_url="https://example.test/api.php",
        amount=7,
        category=None,
        question_type="multiple",
        timeout_seconds=3.0,
    )
    provider = _main.build_provider(cfg, amount=2)
    try:
        assert provider.base_url == "https://example.test/api.php"
        assert provider.build_params("easy") == {
            "amount": "2",
            "type": "multiple",
            "difficulty": "easy",
        }
        assert provider.timeout == 3.0
    finally:
        provider.close()


def test_preview_prints_questions(
    isolated_workspace, patched_provider, stub_http, capsys
):
    stub_http.respond_with_questions(2)

    code = _main.preview_main(
        ["--difficulty", "easy", "--amount", "2", "--seed", "1", "--reveal"]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "Question 1?" in out
    assert "Question 2?" in out
    assert "✓" in out
    assert patched_provider["amount"] == 2
    assert stub_http.calls[0]["params"]["difficulty"] == "easy"
    assert stub_http.closed is True
    assert (isolated_workspace / "logs" / "main.log").exists()


def test_preview_reports_fetch_failure(
    isolated_workspace, patched_provider, stub_http, capsys
):
    stub_http.queue.append(requests.ConnectionError("offline"))

    code = _main.preview_main(["--difficulty", "hard"])

    assert code == 1
    assert "offline" in capsys.readouterr().out


def test_preview_empty_results(
    isolated_workspace, patched_provider, stub_http, capsys
):
    stub_http.respond({"response_code": 1, "results": []})

    assert _main.preview_main([]) == 1
    assert "No questions available." in capsys.readouterr().out


def test_preview_rejects_amount_out_of_range(isolated_workspace):
    with pytest.raises(SystemExit):
        _main.preview_main(["--amount", "0"])


def test_bad_config_exits_with_parser_error(isolated_workspace, tmp_path):
    bad = tmp_path / "bad.toml"
    bad.write_text("[provider]\nnope = 1\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        _main.preview_main(["--config", str(bad)])


class _FakeSession:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


class _FakeApp:
    instances: list["_FakeApp"] = []

    def __init__(self, provider, **kwargs) -> None:
        self.provider = provider
        self.kwargs = kwargs
        self.session = _FakeSession()
        self.last_completed = None
        _FakeApp.instances.append(self)

    def run(self) -> None:
        self.last_completed = SessionSnapshot(
            phase=Phase.COMPLETED,
            questions=(),
            current_index=0,
            score=0,
            timer_seconds=0,
            question_seconds=15,
            difficulty=Difficulty.EASY,
            user_answer=None,
            answer_locked=False,
        )


def test_play_runs_app_and_prints_summary(
    isolated_workspace, patched_provider, stub_http, monkeypatch, capsys
):
    _FakeApp.instances.clear()
    monkeypatch.setattr(_main, "QuizApp", _FakeApp)

    code = _main.play_main(["--difficulty", "easy", "--seed", "5"])

    assert code == 0
    [app] = _FakeApp.instances
    assert app.kwargs["difficulty"] == "easy"
    assert app.kwargs["question_seconds"] == 15
    assert app.kwargs["max_options"] == 4
    assert app.kwargs["rng"] is not None
    assert app.session.closed is True
    assert stub_http.closed is True
    assert "Quiz Completed!" in capsys.readouterr().out


def test_play_no_summary(
    isolated_workspace, patched_provider, monkeypatch, capsys
):
    _FakeApp.instances.clear()
    monkeypatch.setattr(_main, "QuizApp", _FakeApp)

    assert _main.play_main(["--no-summary"]) == 0
    [app] = _FakeApp.instances
    assert app.kwargs["difficulty"] is None
    assert app.kwargs["rng"] is None
    assert "Quiz Completed!" not in capsys.readouterr().out
