"""In-memory sliding-window rate limiter and login lockout.

Usage as a FastAPI dependency:

    from app.core.rate_limit import RateLimiter

    app = FastAPI(dependencies=[Depends(RateLimiter(max_calls=100, key="global"))])
"""

import time
from collections import defaultdict
from threading import Lock

from fastapi import HTTPException, Request, status

from app.config import settings


class _SlidingWindowCounter:
    """Thread-safe sliding window rate counter."""

    def __init__(self) -> None:
        self._windows: dict[str, list[float]] = defaultdict(list)
        self._lock = Lock()

    def is_allowed(self, key: str, max_calls: int, window_seconds: int) -> bool:
        now = time.monotonic()
        cutoff = now - window_seconds
        with self._lock:
            recent = [t for t in self._windows[key] if t > cutoff]
            if len(recent) >= max_calls:
                self._windows[key] = recent
                return False
            recent.append(now)
            self._windows[key] = recent
            return True

    def record(self, key: str) -> None:
        with self._lock:
            self._windows[key].append(time.monotonic())

    def count(self, key: str, window_seconds: int) -> int:
        cutoff = time.monotonic() - window_seconds
        with self._lock:
            self._windows[key] = [t for t in self._windows.get(key, []) if t > cutoff]
            return len(self._windows[key])

    def clear(self, key: str | None = None) -> None:
        """Forget one key, or every key when called without one."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)


# Module-level singleton
_counter = _SlidingWindowCounter()


def reset_rate_limits() -> None:
    _counter.clear()


# --- Login Lockout ---

LOGIN_LOCKOUT_MAX_ATTEMPTS = 5
LOGIN_LOCKOUT_WINDOW_SECONDS = 900  # 15 minutes


def _login_key(email: str) -> str:
    return f"login_fail:{email.lower()}"


def record_failed_login(email: str) -> None:
    _counter.record(_login_key(email))


def clear_failed_logins(email: str) -> None:
    _counter.clear(_login_key(email))


def is_account_locked(email: str) -> bool:
    """True after too many failed attempts within the lockout window."""
    return _counter.count(_login_key(email), LOGIN_LOCKOUT_WINDOW_SECONDS) >= LOGIN_LOCKOUT_MAX_ATTEMPTS


class RateLimiter:
    """FastAPI dependency that enforces per-client-IP rate limits.

    Parameters:
        max_calls: Maximum number of calls within the window.
        window_seconds: Sliding window duration in seconds.
        key: A string prefix to namespace this limiter (e.g. "global").
    """

    def __init__(self, max_calls: int, window_seconds: int = 60, key: str = "default") -> None:
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self.key = key

    async def __call__(self, request: Request) -> None:
        rate_key = f"{self.key}:{client_ip(request)}"
        if not _counter.is_allowed(rate_key, self.max_calls, self.window_seconds):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded. Maximum {self.max_calls} requests per {self.window_seconds} seconds.",
            )


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # The rightmost entry is the one appended by the trusted reverse proxy.
        return forwarded.split(",")[-1].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"


global_rate_limit = RateLimiter(
    max_calls=settings.RATE_LIMIT_PER_MINUTE,
    window_seconds=60,
    key="global",
)
