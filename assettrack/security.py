from __future__ import annotations

import threading
import time
from typing import Dict, Tuple

from flask import current_app, request, session

from assettrack.errors import ValidationError


class SimpleRateLimiter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, int]] = {}

    def allow(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
        now = time.monotonic()
        with self._lock:
            start, count = self._entries.get(key, (now, 0))
            if now - start >= window_seconds:
                start = now
                count = 0
            count += 1
            self._entries[key] = (start, count)
            if len(self._entries) > 10_000:
                cutoff = now - (window_seconds * 2)
                self._entries = {
                    cached_key: value
                    for cached_key, value in self._entries.items()
                    if value[0] >= cutoff
                }
            retry_after = max(0, int(window_seconds - (now - start)))
            return count <= limit, retry_after

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()


_RATE_LIMITER = SimpleRateLimiter()
_LOGIN_LIMITER = SimpleRateLimiter()


def _window_seconds() -> int:
    return max(1, int(current_app.config.get("RATE_LIMIT_WINDOW_SECONDS", 60) or 60))


def _rate_limit_key() -> str:
    user = str(session.get("user_id") or "").strip() or "anon"
    ip = str(request.remote_addr or "").strip() or "unknown"
    route = request.url_rule.rule if request.url_rule else request.path
    return f"{ip}|{user}|{request.method}|{route}"


def _raise_limited(retry_after: int) -> None:
    raise ValidationError(
        code="rate_limit_exceeded",
        http_status=429,
        payload={"retry_after": retry_after},
    )


def enforce_rate_limit() -> None:
    if not bool(current_app.config.get("RATE_LIMIT_ENABLED", True)):
        return
    if request.method == "OPTIONS":
        return

    max_requests = max(1, int(current_app.config.get("RATE_LIMIT_MAX_REQUESTS", 300) or 300))
    allowed, retry_after = _RATE_LIMITER.allow(
        _rate_limit_key(),
        limit=max_requests,
        window_seconds=_window_seconds(),
    )
    if not allowed:
        _raise_limited(retry_after)


def enforce_login_rate_limit(username: str) -> None:
    """Counts login attempts per address and username, successful or not."""
    if not bool(current_app.config.get("RATE_LIMIT_ENABLED", True)):
        return
    max_attempts = max(1, int(current_app.config.get("LOGIN_RATE_LIMIT_MAX_ATTEMPTS", 10) or 10))
    ip = str(request.remote_addr or "").strip() or "unknown"
    allowed, retry_after = _LOGIN_LIMITER.allow(
        f"{ip}|{username or 'anon'}",
        limit=max_attempts,
        window_seconds=_window_seconds(),
    )
    if not allowed:
        _raise_limited(retry_after)


def apply_security_headers(response):
    if not bool(current_app.config.get("SECURITY_HEADERS_ENABLED", True)):
        return response
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    if request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


def reset_rate_limiter_for_tests() -> None:
    _RATE_LIMITER.reset()
    _LOGIN_LIMITER.reset()
