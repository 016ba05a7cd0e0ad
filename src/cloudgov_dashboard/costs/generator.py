"""Synthetic cost series and month-over-month summary."""

from __future__ import annotations

import calendar
import math
import random
from collections.abc import Callable
from datetime import date, datetime, timedelta

from cloudgov_dashboard.domain.models import (
    CostBreakdownItem,
    CostDataPoint,
    CostGroupBy,
    CostRange,
    CostReport,
    CostSummary,
)
from cloudgov_dashboard.utils.time import utc_now

DEFAULT_BASELINE = 1200
NOISE_SPAN = 0.3
PREVIOUS_MONTH_FALLBACK_RATIO = 0.92
WINDOW = 30
HISTORY_POINTS = 12

POINTS_PER_RANGE: dict[CostRange, int] = {
    CostRange.SEVEN_DAYS: 7,
    CostRange.THIRTY_DAYS: 30,
    CostRange.NINETY_DAYS: 90,
    CostRange.TWELVE_MONTHS: 12,
}

# (name, span, floor): cost = floor(random * span + floor)
SERVICE_COST_BANDS: tuple[tuple[str, int, int], ...] = (
    ("EC2", 15000, 10000),
    ("S3", 5000, 2000),
    ("RDS", 10000, 5000),
    ("Lambda", 3000, 1000),
    ("DynamoDB", 4000, 2000),
    ("CloudFront", 2000, 500),
)
REGION_COST_BANDS: tuple[tuple[str, int, int], ...] = (
    ("us-east-1", 20000, 15000),
    ("us-west-2", 15000, 10000),
    ("eu-west-1", 10000, 5000),
    ("ap-southeast-1", 8000, 4000),
)


def _shift_months(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _day_label(day: date) -> str:
    return f"{day:%b} {day.day}"


def _month_label(day: date) -> str:
    return f"{day:%b %Y}"


def _round_half_up(value: float, digits: int = 1) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


class CostSeriesGenerator:
    """Generate cost series around a fixed baseline.

    The random source and clock are injected so callers (and tests) can make
    the output deterministic.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
        baseline: int = DEFAULT_BASELINE,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock
        self.baseline = baseline

    def generate(self, cost_range: CostRange | str) -> CostReport:
        cost_range = CostRange(cost_range)
        today = self._clock().date()
        points = POINTS_PER_RANGE[cost_range]

        costs: list[CostDataPoint] = []
        for offset in range(points - 1, -1, -1):
            if cost_range is CostRange.TWELVE_MONTHS:
                label = _month_label(_shift_months(today, -offset))
            else:
                label = _day_label(today - timedelta(days=offset))
            costs.append(CostDataPoint(date=label, cost=self._sample_cost()))

        return CostReport(costs=costs, summary=self.summarize(costs, today))

    def summarize(self, costs: list[CostDataPoint], today: date) -> CostSummary:
        current_month = sum(point.cost for point in costs[-WINDOW:])
        previous_month: float = sum(point.cost for point in costs[-2 * WINDOW : -WINDOW])
        if not previous_month:
            previous_month = current_month * PREVIOUS_MONTH_FALLBACK_RATIO

        if previous_month:
            percentage_change = (current_month - previous_month) / previous_month * 100
        else:
            percentage_change = 0.0

        days_in_month = calendar.monthrange(today.year, today.month)[1]
        daily_average = current_month / max(today.day, 1)

        return CostSummary(
            current_month=current_month,
            previous_month=math.floor(previous_month),
            percentage_change=_round_half_up(percentage_change),
            projected=math.floor(daily_average * days_in_month),
            history=costs[-HISTORY_POINTS:],
        )

    def breakdown(self, group_by: CostGroupBy | str) -> list[CostBreakdownItem] | None:
        group_by = CostGroupBy(group_by)
        if group_by is CostGroupBy.SERVICE:
            bands = SERVICE_COST_BANDS
        elif group_by is CostGroupBy.REGION:
            bands = REGION_COST_BANDS
        else:
            return None
        return [
            CostBreakdownItem(name=name, cost=math.floor(self._rng.random() * span + floor))
            for name, span, floor in bands
        ]

    def _sample_cost(self) -> int:
        variation = (self._rng.random() - 0.5) * NOISE_SPAN
        return math.floor(self.baseline * (1 + variation))
