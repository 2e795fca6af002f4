from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from threading import RLock
from typing import Any

import httpx

from movie_wizard.core.history import HistoryEntry, HistoryStore
from movie_wizard.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PROMPT_CHARS = 500
MAX_RETRIES = 3
RETRY_DELAY_S = 1.0
RANDOM_PROMPT = "random"
GENERATE_PATH = "/api/generate"

CONFIRM_RANDOM_MESSAGE = "Generate a random movie recommendation?"
CONNECTION_ERROR_MESSAGE = "Unable to connect to the server. Please try again later."


class GenerateAttemptError(RuntimeError):
    pass


@dataclass(frozen=True)
class SessionState:
    prompt: str = ""
    result: str | None = None
    in_progress: bool = False
    retry_count: int = 0
    error: str | None = None


def _confirm_never(_message: str) -> bool:
    return False


def _now_ms() -> int:
    return int(time.time() * 1000)


class RecommendationClient:
    """Turns a prompt into a recommendation via ``POST /api/generate``.

    Each call to :meth:`generate` starts a retry chain: one attempt plus up to
    ``max_retries`` more, ``retry_delay_s`` apart. A newer chain (or
    :meth:`cancel`) makes an older chain stop before its next attempt.

    ``in_progress`` stays set for the whole chain, including the waits between
    attempts. ``on_change`` receives every new :class:`SessionState`; the first
    call of a chain is where a UI brings the loading region into view.
    """

    def __init__(
        self,
        http_client: Any,
        *,
        history: HistoryStore | None = None,
        confirm: Callable[[str], bool] = _confirm_never,
        on_change: Callable[[SessionState], None] | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], int] = _now_ms,
        max_retries: int = MAX_RETRIES,
        retry_delay_s: float = RETRY_DELAY_S,
    ) -> None:
        self._http = http_client
        self._history = history
        self._confirm = confirm
        self._on_change = on_change
        self._sleep = sleep or time.sleep
        self._clock = clock
        self._max_retries = max_retries
        self._retry_delay_s = retry_delay_s

        self._lock = RLock()
        self._chain = 0
        self._state = SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    def cancel(self) -> None:
        """Invalidate the running retry chain, if any."""
        with self._lock:
            self._chain += 1
            if self._state.in_progress:
                self._set(replace(self._state, in_progress=False, retry_count=0))

    def generate(self, prompt: str) -> str | None:
        """Run one retry chain for ``prompt``.

        Returns the recommendation, or None when the user declined a random
        pick, every attempt failed (see ``state.error``), or a newer chain
        took over.

        Raises:
            ValueError: if ``prompt`` is longer than ``MAX_PROMPT_CHARS``.
        """
        if len(prompt) > MAX_PROMPT_CHARS:
            raise ValueError(f"prompt must be at most {MAX_PROMPT_CHARS} characters")

        trimmed = prompt.strip()
        if not trimmed and not self._confirm(CONFIRM_RANDOM_MESSAGE):
            return None

        with self._lock:
            self._chain += 1
            token = self._chain
            self._set(
                replace(self._state, prompt=trimmed, in_progress=True, retry_count=0, error=None)
            )

        payload = {"userInput": trimmed or RANDOM_PROMPT}

        for attempt in range(self._max_retries + 1):
            if attempt:
                self._sleep(self._retry_delay_s)
                with self._lock:
                    if token != self._chain:
                        logger.info("Retry chain superseded before attempt %d", attempt + 1)
                        return None
                    self._set(replace(self._state, retry_count=attempt))

            try:
                output = self._attempt(payload)
            except (httpx.HTTPError, GenerateAttemptError) as e:
                logger.warning("Generate attempt %d failed: %s", attempt + 1, e)
                continue

            with self._lock:
                if token != self._chain:
                    return None
                self._set(
                    replace(
                        self._state,
                        result=output,
                        in_progress=False,
                        retry_count=0,
                        error=None,
                    )
                )

            if self._history is not None:
                try:
                    self._history.append(
                        HistoryEntry(input=trimmed, output=output, timestamp=self._clock())
                    )
                except OSError as e:
                    # The recommendation is still shown; only the history write is lost.
                    logger.warning("Could not save recommendation to history: %s", e)
            return output

        with self._lock:
            if token == self._chain:
                self._set(
                    replace(self._state, in_progress=False, error=CONNECTION_ERROR_MESSAGE)
                )
        return None

    def _attempt(self, payload: dict[str, str]) -> str:
        resp = self._http.post(GENERATE_PATH, json=payload)
        if not resp.is_success:
            raise GenerateAttemptError(f"Server responded with {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            raise GenerateAttemptError("Server returned invalid JSON") from e

        output = body.get("output") if isinstance(body, dict) else None
        if not isinstance(output, str):
            raise GenerateAttemptError("Server response is missing 'output'")
        return output

    def _set(self, state: SessionState) -> None:
        self._state = state
        if self._on_change is not None:
            self._on_change(state)


def build_http_client(base_url: str, *, timeout_s: float = 60.0) -> httpx.Client:
    return httpx.Client(
        base_url=base_url,
        headers={
            "User-Agent": "movie-wizard/0.1",
            "Accept": "application/json",
        },
        timeout=timeout_s,
    )
