"""Time source for the ledger.

All persisted timestamps are naive UTC datetimes (DuckDB TIMESTAMP columns).
Components take a Clock so tests can control time explicitly.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


def utcnow() -> datetime:
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return utcnow()


def isoformat(ts: datetime | None) -> str | None:
    """Render a stored timestamp for payloads and API responses."""
    if ts is None:
        return None
    return ts.isoformat(timespec="microseconds")


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a cursor or payload timestamp back into naive UTC.

    Accepts the ``Z`` suffix and explicit offsets that clients tend to send.
    """
    if isinstance(value, datetime):
        ts = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts
