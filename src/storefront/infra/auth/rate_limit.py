"""Fixed-window request throttling for the public authentication routes.

One limiter is shared by ``/auth/register`` and ``/auth/login``, keyed by
client address. Windows live in a cachetools.TTLCache driven by the
application clock: an entry is inserted once when its window opens and
then only mutated, so it expires exactly when the window closes.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cachetools import TTLCache  # type: ignore[import-untyped]
from fastapi import Request

from storefront.foundation.domain.exceptions import RateLimitExceededError

if TYPE_CHECKING:
    from storefront.foundation.domain.ports import Clock

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


@dataclass(slots=True)
class _Window:
    started_at: float
    count: int = 0


class AuthRateLimiter:
    """Allows ``attempts`` requests per client in each ``window_seconds``.

    Args:
        clock: Time source; tests pass a frozen clock.
        attempts: Requests accepted per window.
        window_seconds: Window length.
        maxsize: Distinct clients tracked at once (oldest evicted first).
    """

    def __init__(
        self,
        clock: Clock,
        attempts: int,
        window_seconds: int,
        maxsize: int = 10_000,
    ) -> None:
        self._clock = clock
        self._attempts = attempts
        self._window_seconds = window_seconds
        self._lock = threading.Lock()
        self._windows: TTLCache[str, _Window] = TTLCache(
            maxsize=maxsize, ttl=window_seconds, timer=self._now
        )

    @property
    def attempts(self) -> int:
        return self._attempts

    def _now(self) -> float:
        return self._clock.now().timestamp()

    def hit(self, client: str) -> int:
        """Count one request from ``client`` and return how many remain.

        Raises:
            RateLimitExceededError: If the client's window is already full.
        """
        with self._lock:
            window = self._windows.get(client)
            if window is None:
                window = _Window(started_at=self._now())
                self._windows[client] = window
            if window.count >= self._attempts:
                retry_after = math.ceil(window.started_at + self._window_seconds - self._now())
                logger.warning(
                    "auth_rate_limited",
                    extra={"client": client, "limit": self._attempts},
                )
                raise RateLimitExceededError("authentication", self._attempts, max(1, retry_after))
            window.count += 1
            return self._attempts - window.count

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


def enforce_auth_rate_limit(request: Request) -> None:
    """Route dependency charging the caller against the shared auth limiter."""
    limiter: AuthRateLimiter = request.app.state.auth_rate_limiter
    client = request.client.host if request.client is not None else UNKNOWN_CLIENT
    limiter.hit(client)
