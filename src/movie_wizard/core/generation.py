from __future__ import annotations

from typing import Any

import httpx

from movie_wizard.core.config import GenerationConfig
from movie_wizard.utils.logging import get_logger

logger = get_logger(__name__)

RANDOM_PROMPT = "random"

SYSTEM_PROMPT = (
    "You are Movie-Wizard, a film expert who recommends exactly one movie. "
    "Answer with the title and release year on the first line, "
    "then two or three sentences on why it fits. No lists, no preamble."
)


class GenerationError(RuntimeError):
    pass


def build_user_prompt(user_input: str) -> str:
    text = user_input.strip()
    if not text or text.lower() == RANDOM_PROMPT:
        return (
            "Surprise me with one well-reviewed movie I might not have seen. "
            "Pick any genre or decade."
        )
    return f"Recommend one movie for someone who wants: {text}"


def build_chat_payload(user_input: str, config: GenerationConfig) -> dict[str, Any]:
    return {
        "model": config.model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(user_input)},
        ],
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
    }


def extract_completion_text(body: Any) -> str:
    """Pull the assistant text out of a chat-completions response body."""
    if not isinstance(body, dict):
        raise GenerationError("Provider response is not a JSON object")

    choices = body.get("choices")
    if not isinstance(choices, list) or not choices:
        raise GenerationError("Provider response has no choices")

    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content.strip():
        raise GenerationError("Provider response has no text")

    return content.strip()


class RecommendationGenerator:
    """Calls an OpenAI-compatible chat-completions API for one recommendation."""

    def __init__(self, config: GenerationConfig, *, client: httpx.Client | None = None) -> None:
        self._config = config
        self._client = client

    @property
    def config(self) -> GenerationConfig:
        return self._config

    def generate(self, user_input: str) -> str:
        client = self._client
        close_client = False
        if client is None:
            client = httpx.Client(timeout=self._config.timeout_s)
            close_client = True

        try:
            try:
                resp = client.post(
                    f"{self._config.base_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self._config.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=build_chat_payload(user_input, self._config),
                )
            except httpx.HTTPError as e:
                raise GenerationError(f"Failed to reach generation provider: {e}") from e

            if resp.status_code >= 400:
                logger.warning("Generation provider responded with %d", resp.status_code)
                raise GenerationError(f"Generation provider responded with {resp.status_code}")

            try:
                body = resp.json()
            except ValueError as e:
                raise GenerationError("Provider returned invalid JSON") from e

            return extract_completion_text(body)
        finally:
            if close_client:
                client.close()
