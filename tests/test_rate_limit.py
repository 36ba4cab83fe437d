"""Unit tests for the register/login rate limiter."""

from __future__ import annotations

from datetime import timedelta

import pytest

from storefront.foundation.domain.exceptions import RateLimitExceededError
from storefront.infra.auth import AuthRateLimiter


@pytest.fixture()
def limiter(clock) -> AuthRateLimiter:
    return AuthRateLimiter(clock, attempts=3, window_seconds=60)


@pytest.mark.unit
class TestAuthRateLimiter:
    def test_counts_down_then_refuses(self, limiter) -> None:
        assert [limiter.hit("10.0.0.1") for _ in range(3)] == [2, 1, 0]
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.hit("10.0.0.1")
        assert exc_info.value.limit == 3
        assert exc_info.value.retry_after == 60
        assert exc_info.value.error_code == "RATE_LIMITED"

    def test_clients_have_separate_windows(self, limiter) -> None:
        for _ in range(3):
            limiter.hit("10.0.0.1")
        assert limiter.hit("10.0.0.2") == 2

    def test_window_is_fixed_from_first_request(self, limiter, clock) -> None:
        limiter.hit("10.0.0.1")
        clock.advance(timedelta(seconds=50))
        limiter.hit("10.0.0.1")
        limiter.hit("10.0.0.1")
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.hit("10.0.0.1")
        assert exc_info.value.retry_after == 10

        clock.advance(timedelta(seconds=10))
        assert limiter.hit("10.0.0.1") == 2

    def test_retry_after_is_at_least_one_second(self, limiter, clock) -> None:
        for _ in range(3):
            limiter.hit("10.0.0.1")
        clock.advance(timedelta(seconds=59, milliseconds=500))
        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.hit("10.0.0.1")
        assert exc_info.value.retry_after == 1

    def test_reset(self, limiter) -> None:
        for _ in range(3):
            limiter.hit("10.0.0.1")
        limiter.reset()
        assert limiter.hit("10.0.0.1") == 2
