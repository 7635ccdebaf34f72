# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""HTTP middleware: JSON error bodies and per-client rate limiting."""
from __future__ import annotations

import time
from typing import Any, Callable

import msgspec
from aiohttp import web
from loguru import logger

from ionic_solana_sponsor.message.sponsor_errors import SponsorError

Handler = Callable[[web.Request], Any]

# Prune idle rate-limit windows once this many clients are tracked
PRUNE_THRESHOLD = 10_000


def _dumps(obj: Any) -> str:
    return msgspec.json.encode(obj).decode("utf-8")


def json_response(body: dict[str, Any], status: int = 200) -> web.Response:
    return web.json_response(body, status=status, dumps=_dumps)


def error_response(message: str, status: int) -> web.Response:
    return json_response({"status": "error", "message": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Renders every failure as `{status: "error", message}`."""
    try:
        return await handler(request)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        message = "Method not allowed" if e.status == 405 else e.reason
        return error_response(message, e.status)
    except SponsorError as e:
        logger.warning(f"{request.method} {request.path} rejected: {e.kind.name}: {e.message}")
        return json_response(e.to_response(), status=e.http_status)
    except Exception as e:
        logger.exception(f"{request.method} {request.path} failed: {e}")
        return error_response("Internal server error", 500)


class RateLimiter:
    """Fixed-window request counter per client address."""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}

    def allow(self, client: str) -> bool:
        if self.max_requests <= 0:
            return True

        now = self._clock()
        start, count = self._windows.get(client, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0

        if count >= self.max_requests:
            self._windows[client] = (start, count)
            return False

        self._windows[client] = (start, count + 1)
        if len(self._windows) > PRUNE_THRESHOLD:
            self._prune(now)
        return True

    def _prune(self, now: float) -> None:
        self._windows = {
            client: window
            for client, window in self._windows.items()
            if now - window[0] < self.window_seconds
        }


def client_address(request: web.Request, trust_forwarded_for: bool = False) -> str:
    """Address the rate limit is keyed on. X-Forwarded-For is client controlled unless a proxy rewrites it."""
    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.remote or "unknown"


def rate_limit_middleware(limiter: RateLimiter, trust_forwarded_for: bool = False):
    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        client = client_address(request, trust_forwarded_for)
        if not limiter.allow(client):
            logger.warning(f"Rate limit exceeded for {client} on {request.path}")
            return error_response("Too many requests", 429)
        return await handler(request)

    return middleware
