"""
Pytest configuration for Movie-Wizard tests.

Every test starts without provider or mail credentials and with its own data
directory, so a developer's .env never leaks into results.
"""
from __future__ import annotations

from pathlib import Path

import pytest

_CONFIG_VARS = (
    "OPENAI_API_KEY",
    "MOVIE_WIZARD_MODEL",
    "MOVIE_WIZARD_OPENAI_BASE_URL",
    "MOVIE_WIZARD_GENERATION_TIMEOUT_S",
    "MOVIE_WIZARD_CORS_ORIGINS",
    "MOVIE_WIZARD_API_URL",
    "EMAIL_HOST",
    "EMAIL_USER",
    "EMAIL_PW",
    "EMAIL_TO",
    "EMAIL_PORT",
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch) -> None:
    for name in _CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("MOVIE_WIZARD_DATA_DIR", str(tmp_path / "data"))


class FakeGenerator:
    """Stands in for the provider-backed generator in route tests."""

    def __init__(self, outputs: list[str] | None = None, error: Exception | None = None) -> None:
        self.calls: list[str] = []
        self._outputs = list(outputs or ["Arrival (2016)"])
        self._error = error

    def generate(self, user_input: str) -> str:
        self.calls.append(user_input)
        if self._error is not None:
            raise self._error
        if len(self._outputs) > 1:
            return self._outputs.pop(0)
        return self._outputs[0]


@pytest.fixture
def make_generator() -> type[FakeGenerator]:
    return FakeGenerator
