from __future__ import annotations

import os
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response


@dataclass
class _Window:
    hits: deque[float]
    window_s: float


@dataclass(frozen=True)
class _Bucket:
    name: str
    limit: int
    window_s: float


class SlidingWindowRateLimiter:
    """Very small in-process rate limiter.

    This is not intended to be perfect. It keeps a single client from burning
    through the generation provider's quota or flooding the contact inbox.

    Keys are derived from client IP + a logical bucket.
    """

    def __init__(self, *, sweep_interval_s: float = 60.0) -> None:
        self._lock = Lock()
        self._windows: dict[str, _Window] = {}
        self._sweep_interval_s = sweep_interval_s
        self._last_sweep = time.time()

    def key_count(self) -> int:
        with self._lock:
            return len(self._windows)

    def _sweep(self, now: float) -> None:
        # Forget clients whose newest hit has left their window.
        stale = [
            key
            for key, w in self._windows.items()
            if not w.hits or w.hits[-1] < now - w.window_s
        ]
        for key in stale:
            del self._windows[key]
        self._last_sweep = now

    def allow(self, *, key: str, limit: int, window_s: float) -> tuple[bool, int]:
        now = time.time()
        cutoff = now - window_s
        with self._lock:
            if now - self._last_sweep >= self._sweep_interval_s:
                self._sweep(now)

            w = self._windows.get(key)
            if w is None:
                w = _Window(hits=deque(), window_s=window_s)
                self._windows[key] = w

            while w.hits and w.hits[0] < cutoff:
                w.hits.popleft()

            if len(w.hits) >= limit:
                return False, 0

            w.hits.append(now)
            remaining = max(0, limit - len(w.hits))
            return True, remaining


def _bucket_from_env(name: str, *, default_limit: int, default_window_s: float) -> _Bucket:
    env_name = name.upper()
    return _Bucket(
        name=name,
        limit=int(os.environ.get(f"MOVIE_WIZARD_RL_{env_name}", str(default_limit))),
        window_s=float(
            os.environ.get(f"MOVIE_WIZARD_RL_{env_name}_WINDOW_S", str(default_window_s))
        ),
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, limiter: SlidingWindowRateLimiter | None = None) -> None:
        super().__init__(app)
        self._limiter = limiter or SlidingWindowRateLimiter()

        # Defaults can be tuned via env vars (useful for tests/deploy).
        self._global = _bucket_from_env("global", default_limit=60, default_window_s=60)
        self._by_path = {
            "/api/generate": _bucket_from_env("generate", default_limit=20, default_window_s=60),
            "/api/handle-contact": _bucket_from_env(
                "contact", default_limit=5, default_window_s=60
            ),
        }

    def _allow(self, client_ip: str, bucket: _Bucket) -> bool:
        ok, _remaining = self._limiter.allow(
            key=f"{client_ip}:{bucket.name}", limit=bucket.limit, window_s=bucket.window_s
        )
        return ok

    async def dispatch(self, request: Request, call_next) -> Response:
        client_ip = request.client.host if request.client else "unknown"

        buckets = [self._global]
        path_bucket = self._by_path.get(request.url.path.rstrip("/"))
        if path_bucket is not None:
            buckets.append(path_bucket)

        for bucket in buckets:
            if not self._allow(client_ip, bucket):
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Rate limit exceeded"},
                )

        return await call_next(request)
