from __future__ import annotations

import random
from datetime import date

import pytest
from conftest import FIXED_NOW

from cloudgov_dashboard.costs.generator import CostSeriesGenerator
from cloudgov_dashboard.domain.models import CostDataPoint, CostGroupBy, CostRange


class _ConstantRandom(random.Random):
    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def _generator(value: float | None = None, baseline: int = 1200) -> CostSeriesGenerator:
    rng = _ConstantRandom(value) if value is not None else random.Random(1234)
    return CostSeriesGenerator(rng=rng, clock=lambda: FIXED_NOW, baseline=baseline)


@pytest.mark.parametrize(
    ("cost_range", "points"),
    [
        (CostRange.SEVEN_DAYS, 7),
        (CostRange.THIRTY_DAYS, 30),
        (CostRange.NINETY_DAYS, 90),
        (CostRange.TWELVE_MONTHS, 12),
    ],
)
def test_point_count_per_range(cost_range: CostRange, points: int) -> None:
    report = _generator().generate(cost_range)
    assert len(report.costs) == points


def test_costs_stay_within_noise_band() -> None:
    report = _generator().generate("90d")
    assert all(1020 <= point.cost < 1380 for point in report.costs)


@pytest.mark.parametrize("value", [0.0, 0.999999])
def test_noise_band_edges(value: float) -> None:
    report = _generator(value).generate(CostRange.SEVEN_DAYS)
    expected = 1020 if value == 0.0 else 1379
    assert {point.cost for point in report.costs} == {expected}


def test_daily_labels_end_today() -> None:
    report = _generator(0.5).generate(CostRange.THIRTY_DAYS)
    assert report.costs[0].date == "Dec 17"
    assert report.costs[-1].date == "Jan 15"


def test_monthly_labels_span_a_year() -> None:
    report = _generator(0.5).generate(CostRange.TWELVE_MONTHS)
    assert report.costs[0].date == "Feb 2024"
    assert report.costs[-1].date == "Jan 2025"


def test_summary_falls_back_to_ratio_without_previous_window() -> None:
    summary = _generator(0.5).generate(CostRange.THIRTY_DAYS).summary
    assert summary.current_month == 36000
    assert summary.previous_month == 33120
    assert summary.percentage_change == 8.7
    assert summary.projected == 74400
    assert len(summary.history) == 12


def test_summary_uses_previous_window_when_available() -> None:
    summary = _generator(0.5).generate(CostRange.NINETY_DAYS).summary
    assert summary.current_month == 36000
    assert summary.previous_month == 36000
    assert summary.percentage_change == 0.0


def test_summary_guards_division_by_zero() -> None:
    summary = _generator(0.5, baseline=0).generate(CostRange.SEVEN_DAYS).summary
    assert summary.current_month == 0
    assert summary.previous_month == 0
    assert summary.percentage_change == 0.0
    assert summary.projected == 0


def test_summarize_rounds_half_up() -> None:
    values = [105] * 30 + [100] * 30
    costs = [CostDataPoint(date=f"d{i}", cost=c) for i, c in enumerate(values)]
    summary = _generator().summarize(costs, date(2025, 1, 15))
    # previous window sums to 3150, current to 3000.
    assert summary.percentage_change == -4.8
    assert summary.projected == 6200


def test_seeded_generators_are_deterministic() -> None:
    first = CostSeriesGenerator(rng=random.Random(99), clock=lambda: FIXED_NOW)
    second = CostSeriesGenerator(rng=random.Random(99), clock=lambda: FIXED_NOW)
    assert first.generate("30d") == second.generate("30d")


def test_service_and_region_breakdowns() -> None:
    generator = _generator(0.5)
    services = generator.breakdown(CostGroupBy.SERVICE)
    regions = generator.breakdown("region")

    assert services is not None and regions is not None
    assert [item.name for item in services] == [
        "EC2",
        "S3",
        "RDS",
        "Lambda",
        "DynamoDB",
        "CloudFront",
    ]
    assert services[0].cost == 17500
    assert [item.name for item in regions][0] == "us-east-1"
    assert regions[0].cost == 25000


@pytest.mark.parametrize("group_by", [CostGroupBy.DAY, CostGroupBy.PROJECT])
def test_other_groupings_have_no_breakdown(group_by: CostGroupBy) -> None:
    assert _generator().breakdown(group_by) is None


def test_unknown_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        _generator().generate("1y")
