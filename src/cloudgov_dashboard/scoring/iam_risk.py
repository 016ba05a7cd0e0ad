"""Risk arithmetic for IAM roles and users."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from cloudgov_dashboard.domain.models import AccessLevel, IAMPolicy, RiskLevel

HIGH_RISK_POLICY_WEIGHT = 40
STANDARD_POLICY_WEIGHT = 10
PERMISSIONS_BOUNDARY_DISCOUNT = 20

USER_BASE_RISK: dict[AccessLevel, int] = {
    AccessLevel.ADMIN: 70,
    AccessLevel.POWER_USER: 40,
    AccessLevel.READ_ONLY: 15,
}
MFA_DISCOUNT = 15
MFA_FLOOR = 5
NO_MFA_PENALTY = 20

HIGH_RISK_THRESHOLD = 60
MEDIUM_RISK_THRESHOLD = 30

DEFAULT_USER_PERMISSIONS: dict[AccessLevel, tuple[str, ...]] = {
    AccessLevel.ADMIN: ("*:*",),
    AccessLevel.POWER_USER: ("s3:*", "lambda:*", "dynamodb:*", "ec2:Describe*"),
    AccessLevel.READ_ONLY: ("s3:Get*", "ec2:Describe*"),
}


@dataclass(frozen=True)
class RoleRiskAssessment:
    risk_score: int
    is_overly_permissive: bool
    policies: tuple[IAMPolicy, ...]


def score_role(
    policy_ids: Iterable[str],
    catalog: Mapping[str, IAMPolicy],
    has_permissions_boundary: bool,
) -> RoleRiskAssessment:
    """Compute the creation-time risk of a role.

    Every requested policy id contributes, including ids missing from the
    catalog (they count as standard policies but are not attached). The sum
    is not clamped to 100; only the boundary discount is floored at 0.
    """
    risk_score = 0
    overly_permissive = False
    attached: list[IAMPolicy] = []
    for policy_id in policy_ids:
        policy = catalog.get(policy_id)
        if policy is not None:
            attached.append(policy)
        if policy is not None and policy.is_high_risk:
            risk_score += HIGH_RISK_POLICY_WEIGHT
            overly_permissive = True
        else:
            risk_score += STANDARD_POLICY_WEIGHT

    if has_permissions_boundary:
        risk_score = max(risk_score - PERMISSIONS_BOUNDARY_DISCOUNT, 0)

    return RoleRiskAssessment(
        risk_score=risk_score,
        is_overly_permissive=overly_permissive,
        policies=tuple(attached),
    )


def score_user(access_level: AccessLevel, mfa_enabled: bool) -> int:
    base = USER_BASE_RISK[access_level]
    if mfa_enabled:
        return max(base - MFA_DISCOUNT, MFA_FLOOR)
    return base + NO_MFA_PENALTY


def default_permissions(access_level: AccessLevel) -> list[str]:
    return list(DEFAULT_USER_PERMISSIONS[access_level])


def risk_level(score: int) -> RiskLevel:
    if score >= HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
