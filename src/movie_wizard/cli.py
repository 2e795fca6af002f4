"""Movie-Wizard command line entrypoint."""
from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from movie_wizard.core.client import (
    MAX_RETRIES,
    RecommendationClient,
    SessionState,
    build_http_client,
)
from movie_wizard.core.history import (
    HistoryStore,
    JsonFileStorage,
    default_client_storage_path,
)

DEFAULT_API_URL = "http://127.0.0.1:8000"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="movie-wizard", description="Movie-Wizard")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the web app")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")

    rec = sub.add_parser("recommend", help="ask a running server for a movie")
    rec.add_argument("prompt", nargs="?", default="")
    rec.add_argument("--yes", action="store_true", help="skip the random-pick confirmation")
    rec.add_argument(
        "--base-url", default=os.environ.get("MOVIE_WIZARD_API_URL", DEFAULT_API_URL)
    )
    rec.add_argument("--storage", type=Path, help="client storage file")

    hist = sub.add_parser("history", help="show or clear previous recommendations")
    hist.add_argument("--clear", action="store_true")
    hist.add_argument("--storage", type=Path, help="client storage file")

    return parser.parse_args(argv)


def _history_store(path: Path | None) -> HistoryStore:
    return HistoryStore(JsonFileStorage(path or default_client_storage_path()))


def _ask(message: str) -> bool:
    try:
        answer = input(f"{message} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _print_progress(state: SessionState) -> None:
    if state.in_progress and state.retry_count:
        print(f"Retrying... ({state.retry_count}/{MAX_RETRIES})", file=sys.stderr)


def run_recommend(args: argparse.Namespace) -> int:
    history = _history_store(args.storage)
    with build_http_client(args.base_url) as http:
        client = RecommendationClient(
            http,
            history=history,
            confirm=(lambda _msg: True) if args.yes else _ask,
            on_change=_print_progress,
        )
        try:
            output = client.generate(args.prompt)
        except ValueError as e:
            print(f"error: {e}", file=sys.stderr)
            return 2

    if client.state.error:
        print(client.state.error, file=sys.stderr)
        return 1
    if output is not None:
        print(output)
    return 0


def run_history(args: argparse.Namespace) -> int:
    history = _history_store(args.storage)
    if args.clear:
        history.clear()
        print("History cleared.")
        return 0

    entries = history.entries
    if not entries:
        print("No previous recommendations.")
        return 0

    for entry in entries:
        print(f"> {entry.input or 'Random recommendation'}")
        print(entry.output)
        print()
    return 0


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "movie_wizard.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "serve":
        return run_serve(args)
    if args.command == "recommend":
        return run_recommend(args)
    return run_history(args)


if __name__ == "__main__":
    raise SystemExit(main())
