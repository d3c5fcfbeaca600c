"""
In-memory login rate limiter.

Tracks failed login attempts per (IP, email) combo. After MAX_ATTEMPTS
failures within WINDOW_SECONDS, blocks that combo for the remainder of
the window. Resets on successful login. State lives in process memory
and is cleared on restart.
"""

import time
from threading import Lock

MAX_ATTEMPTS = 5
WINDOW_SECONDS = 900  # 15 minutes


class LoginRateLimiter:
    def __init__(self, max_attempts: int = MAX_ATTEMPTS, window_seconds: int = WINDOW_SECONDS):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._attempts: dict[tuple[str, str], list[float]] = {}
        self._lock = Lock()

    def _prune(self, key: tuple[str, str], now: float) -> list[float]:
        """Remove timestamps older than the window."""
        cutoff = now - self.window_seconds
        pruned = [t for t in self._attempts.get(key, []) if t > cutoff]
        if pruned:
            self._attempts[key] = pruned
        else:
            self._attempts.pop(key, None)
        return pruned

    def check(self, ip: str, email: str) -> int:
        """Check if login is allowed.

        Returns 0 if allowed, or seconds remaining until unlock.
        """
        key = (ip, email.lower())
        now = time.monotonic()
        with self._lock:
            recent = self._prune(key, now)
            if len(recent) >= self.max_attempts:
                return int(self.window_seconds - (now - recent[0])) + 1
        return 0

    def record_failure(self, ip: str, email: str) -> None:
        key = (ip, email.lower())
        now = time.monotonic()
        with self._lock:
            self._prune(key, now)
            self._attempts.setdefault(key, []).append(now)

    def reset(self, ip: str, email: str) -> None:
        """Clear attempts on successful login."""
        with self._lock:
            self._attempts.pop((ip, email.lower()), None)


# Module-level singleton — shared across Waitress threads
limiter = LoginRateLimiter()
