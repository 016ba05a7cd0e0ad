"""Compliance scoring over security findings."""

from __future__ import annotations

from collections.abc import Iterable

from cloudgov_dashboard.domain.models import (
    ComplianceSummary,
    FindingStatus,
    SecurityFinding,
    Severity,
    SeverityBreakdown,
)

MAX_SCORE = 100

SEVERITY_PENALTIES: dict[Severity, int] = {
    Severity.CRITICAL: 15,
    Severity.HIGH: 8,
    Severity.MEDIUM: 3,
    Severity.LOW: 1,
}

# Lower bounds, checked highest first.
GRADE_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)
FAILING_GRADE = "F"


def grade_for(score: int) -> str:
    for lower_bound, grade in GRADE_THRESHOLDS:
        if score >= lower_bound:
            return grade
    return FAILING_GRADE


def count_open_by_severity(findings: Iterable[SecurityFinding]) -> SeverityBreakdown:
    counts = {severity: 0 for severity in Severity}
    for finding in findings:
        if finding.status == FindingStatus.OPEN:
            counts[finding.severity] += 1
    return SeverityBreakdown(
        critical=counts[Severity.CRITICAL],
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
    )


def score_findings(findings: Iterable[SecurityFinding]) -> ComplianceSummary:
    """Score a finding set from 0 to 100 and assign a letter grade.

    Only findings with status ``open`` are penalised; each open finding
    subtracts its severity weight from 100 and the result is floored at 0.
    """
    breakdown = count_open_by_severity(findings)
    penalty = (
        breakdown.critical * SEVERITY_PENALTIES[Severity.CRITICAL]
        + breakdown.high * SEVERITY_PENALTIES[Severity.HIGH]
        + breakdown.medium * SEVERITY_PENALTIES[Severity.MEDIUM]
        + breakdown.low * SEVERITY_PENALTIES[Severity.LOW]
    )
    score = max(0, MAX_SCORE - penalty)
    return ComplianceSummary(score=score, grade=grade_for(score), breakdown=breakdown)
