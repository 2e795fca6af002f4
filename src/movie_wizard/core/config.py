"""
Configuration for the Movie-Wizard service.

Values come from the process environment. A `.env` file in the working
directory is loaded first but never overrides variables that are already set.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_SMTP_PORT = 465


class MailConfigError(ValueError):
    pass


class GenerationConfigError(ValueError):
    pass


def _env(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def default_data_dir() -> Path:
    return Path(os.environ.get("MOVIE_WIZARD_DATA_DIR", "data")).resolve()


def parse_csv_env(name: str) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return []

    # Support both comma-separated values and newline-separated values (common in PaaS).
    parts = [p.strip() for p in raw.replace("\n", ",").split(",")]
    return [p for p in parts if p]


@dataclass(frozen=True)
class MailConfig:
    host: str
    user: str
    password: str
    to: str
    port: int = DEFAULT_SMTP_PORT

    def __repr__(self) -> str:
        return (
            f"MailConfig(host={self.host!r}, user={self.user!r}, "
            f"password='***', to={self.to!r}, port={self.port})"
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MailConfig:
        """Build the mail settings, failing on any missing credential.

        Raises:
            MailConfigError: naming every missing variable.
        """
        env = _env(environ)
        required = {
            "EMAIL_HOST": env.get("EMAIL_HOST", "").strip(),
            "EMAIL_USER": env.get("EMAIL_USER", "").strip(),
            "EMAIL_PW": env.get("EMAIL_PW", ""),
            "EMAIL_TO": env.get("EMAIL_TO", "").strip(),
        }
        missing = [key for key, value in required.items() if not value]
        if missing:
            raise MailConfigError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        raw_port = env.get("EMAIL_PORT", "").strip()
        try:
            port = int(raw_port) if raw_port else DEFAULT_SMTP_PORT
        except ValueError as e:
            raise MailConfigError(f"EMAIL_PORT must be an integer, got {raw_port!r}") from e

        return cls(
            host=required["EMAIL_HOST"],
            user=required["EMAIL_USER"],
            password=required["EMAIL_PW"],
            to=required["EMAIL_TO"],
            port=port,
        )


@dataclass(frozen=True)
class GenerationConfig:
    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_OPENAI_BASE_URL
    timeout_s: float = 30.0
    temperature: float = 0.7
    max_tokens: int = 250

    def __repr__(self) -> str:
        return (
            f"GenerationConfig(api_key='***', model={self.model!r}, "
            f"base_url={self.base_url!r}, timeout_s={self.timeout_s})"
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GenerationConfig:
        env = _env(environ)
        api_key = env.get("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise GenerationConfigError("Missing required environment variables: OPENAI_API_KEY")

        raw_timeout = env.get("MOVIE_WIZARD_GENERATION_TIMEOUT_S", "").strip()
        try:
            timeout_s = float(raw_timeout) if raw_timeout else 30.0
        except ValueError as e:
            raise GenerationConfigError(
                f"MOVIE_WIZARD_GENERATION_TIMEOUT_S must be a number, got {raw_timeout!r}"
            ) from e

        return cls(
            api_key=api_key,
            model=env.get("MOVIE_WIZARD_MODEL", "").strip() or DEFAULT_MODEL,
            base_url=(
                env.get("MOVIE_WIZARD_OPENAI_BASE_URL", "").strip() or DEFAULT_OPENAI_BASE_URL
            ).rstrip("/"),
            timeout_s=timeout_s,
        )
