from __future__ import annotations

from pathlib import Path

import pytest

from fixtures import StubHttp


@pytest.fixture
def stub_http() -> StubHttp:
    return StubHttp()


@pytest.fixture
def isolated_workspace(tmp_path, monkeypatch) -> Path:
    """Point the workspace and config lookups at a temp directory."""

    root = tmp_path / "trivia-home"
    monkeypatch.setenv("TRIVIA_QUIZ_DATA_HOME", str(root))
    monkeypatch.delenv("TRIVIA_QUIZ_CONFIG", raising=False)
    return root
