from __future__ import annotations

import json

import httpx
import pytest

from movie_wizard.core.client import (
    CONFIRM_RANDOM_MESSAGE,
    CONNECTION_ERROR_MESSAGE,
    RecommendationClient,
    SessionState,
)
from movie_wizard.core.history import HistoryStore, MemoryStorage


class _Server:
    """Scripted /api/generate: one (status, body) per request, last one repeats."""

    def __init__(self, responses: list[tuple[int, object]]) -> None:
        self.responses = list(responses)
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/generate"
        self.requests.append(json.loads(request.content))
        status, body = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return httpx.Response(status, json=body)


def _client(
    server,
    *,
    history: HistoryStore | None = None,
    confirm=lambda _msg: True,
    sleeps: list[float] | None = None,
    states: list[SessionState] | None = None,
) -> RecommendationClient:
    http = httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(server))
    return RecommendationClient(
        http,
        history=history,
        confirm=confirm,
        sleep=(sleeps.append if sleeps is not None else lambda _s: None),
        on_change=(states.append if states is not None else None),
        clock=lambda: 1_700_000_000_000,
    )


def test_successful_first_attempt_updates_state_and_history() -> None:
    server = _Server([(200, {"output": "Arrival (2016)"})])
    history = HistoryStore(MemoryStorage())
    client = _client(server, history=history)

    result = client.generate("a sci-fi movie")

    assert result == "Arrival (2016)"
    assert server.requests == [{"userInput": "a sci-fi movie"}]
    assert client.state.result == "Arrival (2016)"
    assert client.state.error is None
    assert client.state.in_progress is False
    assert client.state.retry_count == 0

    entries = history.entries
    assert len(entries) == 1
    assert entries[0].input == "a sci-fi movie"
    assert entries[0].output == "Arrival (2016)"
    assert entries[0].timestamp == 1_700_000_000_000


@pytest.mark.parametrize(
    ("prompt", "expected"),
    [
        ("  noir  ", "noir"),
        ("\tslow burn horror\n", "slow burn horror"),
        ("x" * 500, "x" * 500),
    ],
)
def test_request_carries_trimmed_prompt(prompt: str, expected: str) -> None:
    server = _Server([(200, {"output": "ok"})])
    client = _client(server)

    client.generate(prompt)

    assert server.requests == [{"userInput": expected}]


def test_empty_prompt_asks_then_sends_random() -> None:
    asked: list[str] = []
    server = _Server([(200, {"output": "Paddington 2"})])
    history = HistoryStore(MemoryStorage())
    client = _client(server, history=history, confirm=lambda msg: asked.append(msg) or True)

    assert client.generate("   ") == "Paddington 2"

    assert asked == [CONFIRM_RANDOM_MESSAGE]
    assert server.requests == [{"userInput": "random"}]
    assert history.entries[0].input == ""


def test_declined_random_pick_sends_nothing_and_keeps_state() -> None:
    server = _Server([(200, {"output": "never"})])
    history = HistoryStore(MemoryStorage())
    states: list[SessionState] = []
    client = _client(server, history=history, confirm=lambda _msg: False, states=states)
    before = client.state

    assert client.generate("") is None

    assert server.requests == []
    assert client.state == before
    assert states == []
    assert history.entries == []


def test_non_empty_prompt_does_not_ask() -> None:
    def _confirm(_msg: str) -> bool:
        raise AssertionError("should not ask")

    client = _client(_Server([(200, {"output": "ok"})]), confirm=_confirm)
    assert client.generate("anything") == "ok"


def test_prompt_longer_than_500_chars_is_rejected() -> None:
    server = _Server([(200, {"output": "ok"})])
    client = _client(server)

    with pytest.raises(ValueError):
        client.generate("x" * 501)
    assert server.requests == []


def test_gives_up_after_four_attempts_with_one_second_spacing() -> None:
    server = _Server([(500, {"detail": "boom"})])
    sleeps: list[float] = []
    history = HistoryStore(MemoryStorage())
    client = _client(server, history=history, sleeps=sleeps)

    assert client.generate("anything") is None

    assert len(server.requests) == 4
    assert sleeps == [1.0, 1.0, 1.0]
    assert client.state.error == CONNECTION_ERROR_MESSAGE
    assert client.state.in_progress is False
    assert client.state.result is None
    assert history.entries == []


@pytest.mark.parametrize("k", [1, 2, 3, 4])
def test_success_on_attempt_k_makes_exactly_k_attempts(k: int) -> None:
    server = _Server([(503, {})] * (k - 1) + [(200, {"output": "Inception"})])
    sleeps: list[float] = []
    client = _client(server, sleeps=sleeps)

    assert client.generate("dreams") == "Inception"

    assert len(server.requests) == k
    assert len(sleeps) == k - 1
    assert client.state.retry_count == 0
    assert client.state.error is None


def test_three_failures_then_success_shows_result() -> None:
    server = _Server([(500, {}), (500, {}), (500, {}), (200, {"output": "Inception"})])
    states: list[SessionState] = []
    client = _client(server, states=states)

    client.generate("mind-bending")

    assert client.state.result == "Inception"
    assert client.state.retry_count == 0
    # Retry counter is visible while the chain runs, and busy never flickers.
    assert [s.retry_count for s in states if s.in_progress] == [0, 1, 2, 3]
    assert all(s.in_progress for s in states[:-1])
    assert states[-1].in_progress is False


def test_transport_errors_and_bad_bodies_are_retried() -> None:
    calls = {"n": 0}

    def _handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("refused", request=request)
        if calls["n"] == 2:
            return httpx.Response(200, text="<html>not json</html>")
        if calls["n"] == 3:
            return httpx.Response(200, json={"result": "wrong field"})
        return httpx.Response(200, json={"output": "Heat (1995)"})

    client = _client(_handler)

    assert client.generate("heist") == "Heat (1995)"
    assert calls["n"] == 4


def test_new_generate_clears_previous_error() -> None:
    server = _Server([(500, {}), (500, {}), (500, {}), (500, {}), (200, {"output": "Up"})])
    client = _client(server)

    client.generate("first")
    assert client.state.error == CONNECTION_ERROR_MESSAGE

    client.generate("second")
    assert client.state.error is None
    assert client.state.result == "Up"


def test_cancel_stops_chain_before_next_attempt() -> None:
    server = _Server([(500, {})])
    client_ref: list[RecommendationClient] = []

    def _sleep(_s: float) -> None:
        client_ref[0].cancel()

    http = httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(server))
    client = RecommendationClient(http, confirm=lambda _msg: True, sleep=_sleep)
    client_ref.append(client)

    assert client.generate("anything") is None

    assert len(server.requests) == 1
    assert client.state.in_progress is False
    assert client.state.error is None


def test_newer_chain_supersedes_pending_retries() -> None:
    server = _Server([(500, {}), (200, {"output": "Second pick"})])
    client_ref: list[RecommendationClient] = []
    nested: list[str | None] = []

    def _sleep(_s: float) -> None:
        # A fresh user request arrives while the first chain waits.
        if not nested:
            nested.append(client_ref[0].generate("second"))

    http = httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(server))
    history = HistoryStore(MemoryStorage())
    client = RecommendationClient(
        http, history=history, confirm=lambda _msg: True, sleep=_sleep
    )
    client_ref.append(client)

    assert client.generate("first") is None

    assert nested == ["Second pick"]
    assert [r["userInput"] for r in server.requests] == ["first", "second"]
    assert client.state.result == "Second pick"
    assert [e.input for e in history.entries] == ["second"]


def test_history_write_failure_still_returns_result() -> None:
    class _ReadOnlyStorage(MemoryStorage):
        def set_item(self, key: str, value: str) -> None:
            raise OSError("disk full")

    history = HistoryStore(_ReadOnlyStorage())
    client = _client(_Server([(200, {"output": "Up"})]), history=history)

    assert client.generate("x") == "Up"

    assert client.state.result == "Up"
    assert client.state.error is None
    assert history.entries == []
