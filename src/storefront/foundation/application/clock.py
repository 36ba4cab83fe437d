"""System clock adapter for the Clock port."""

from __future__ import annotations

from datetime import UTC, datetime


class SystemClock:
    """Clock backed by the host's wall clock, always in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)
