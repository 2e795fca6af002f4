from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from movie_wizard.api.rate_limit import RateLimitMiddleware
from movie_wizard.api.routes import router
from movie_wizard.core.config import (
    GenerationConfig,
    GenerationConfigError,
    MailConfig,
    MailConfigError,
    parse_csv_env,
)
from movie_wizard.core.generation import RecommendationGenerator
from movie_wizard.core.mail import MailRelay
from movie_wizard.utils.logging import get_logger

logger = get_logger(__name__)


def create_generator() -> RecommendationGenerator | None:
    try:
        return RecommendationGenerator(GenerationConfig.from_env())
    except GenerationConfigError as e:
        logger.warning("Recommendations disabled: %s", e)
        return None


def create_mail_relay() -> MailRelay | None:
    try:
        return MailRelay(MailConfig.from_env())
    except MailConfigError as e:
        # Only the contact form depends on mail; recommendations keep working.
        logger.warning("Contact form disabled: %s", e)
        return None


def create_app() -> FastAPI:
    app = FastAPI(title="Movie-Wizard", version="0.1.0")

    # Attach shared components.
    app.state.generator = create_generator()
    app.state.mail_relay = create_mail_relay()

    # CORS is opt-in. Configure allowed origins via env var, e.g.
    #   MOVIE_WIZARD_CORS_ORIGINS=https://your.site,https://admin.your.site
    cors_origins = parse_csv_env("MOVIE_WIZARD_CORS_ORIGINS")
    if cors_origins:
        # Allow '*' for quick demos; do not allow credentials with wildcard.
        allow_all = "*" in cors_origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if allow_all else cors_origins,
            allow_credentials=False,
            allow_methods=["*"] if allow_all else ["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    # Basic rate limiting to protect upstream calls.
    app.add_middleware(RateLimitMiddleware)

    # Ensure unexpected errors don't leak internals.
    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(_request, exc: Exception):
        logger.error("Unhandled error: %s", type(exc).__name__)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(router)
    return app


app = create_app()
