from __future__ import annotations

from datetime import datetime, timezone as dt_timezone


class TimezoneUtils:
    """Timestamp helpers shared by models and services."""

    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(dt_timezone.utc)
