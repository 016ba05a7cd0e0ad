"""Aggregation over AI provider usage logs."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from cloudgov_dashboard.domain.models import AIUsageLog

TREND_DAYS = 7


def _bucket() -> dict[str, Any]:
    return {"requests": 0, "tokens": 0, "cost": 0.0}


def _add(bucket: dict[str, Any], log: AIUsageLog) -> None:
    bucket["requests"] += 1
    bucket["tokens"] += log.tokens_used
    bucket["cost"] += log.cost


def summarize_ai_usage(logs: Sequence[AIUsageLog], now: datetime) -> dict[str, Any]:
    """Totals, per-provider and per-user breakdowns, and a trailing daily trend.

    ``dailyTrend`` always has one entry per UTC day for the last
    ``TREND_DAYS`` days ending today, oldest first, including empty days.
    """
    by_provider: dict[str, dict[str, Any]] = {}
    by_user: dict[str, dict[str, Any]] = {}
    today = now.astimezone(timezone.utc).date()
    days = [today - timedelta(days=offset) for offset in range(TREND_DAYS - 1, -1, -1)]
    daily = {day.isoformat(): _bucket() for day in days}

    for log in logs:
        _add(by_provider.setdefault(log.provider, _bucket()), log)
        _add(by_user.setdefault(log.username, _bucket()), log)
        day = log.timestamp.astimezone(timezone.utc).date().isoformat()
        if day in daily:
            _add(daily[day], log)

    count = len(logs)
    successes = sum(1 for log in logs if log.success)
    return {
        "totalRequests": count,
        "totalTokens": sum(log.tokens_used for log in logs),
        "totalCost": round(sum(log.cost for log in logs), 6),
        "avgResponseTime": sum(log.response_time for log in logs) / count if count else 0,
        "successRate": successes / count * 100 if count else 0,
        "byProvider": by_provider,
        "byUser": by_user,
        "dailyTrend": [{"date": date, **bucket} for date, bucket in daily.items()],
    }
