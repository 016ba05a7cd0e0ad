"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat().replace("+00:00", "Z")


def days_ago(days: float, now: datetime | None = None) -> datetime:
    return (now or utc_now()) - timedelta(days=days)
