"""Predicate filtering and offset/limit pagination over in-memory collections."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar

from cloudgov_dashboard.domain.models import (
    AccessLevel,
    AIUsageLog,
    AWSResource,
    FindingStatus,
    IAMRole,
    IAMUser,
    ResourceStatus,
    ResourceType,
    RiskLevel,
    RunningMode,
    SecurityFinding,
    Severity,
    WorkSpace,
    WorkSpaceState,
)
from cloudgov_dashboard.scoring.iam_risk import risk_level

T = TypeVar("T")

Predicate = Callable[[T], bool]


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int

    @property
    def count(self) -> int:
        return len(self.items)


def apply_filters(items: Iterable[T], predicates: Sequence[Predicate[T]]) -> list[T]:
    """Keep items satisfying every predicate, preserving order."""
    return [item for item in items if all(predicate(item) for predicate in predicates)]


def paginate(items: Sequence[T], offset: int = 0, limit: int = 100) -> Page[T]:
    offset = max(offset, 0)
    limit = max(limit, 0)
    return Page(
        items=list(items[offset : offset + limit]),
        total=len(items),
        offset=offset,
        limit=limit,
    )


def _contains(haystack: str, needle: str) -> bool:
    return needle.lower() in haystack.lower()


def _in_risk_bucket(bucket: RiskLevel) -> Predicate:
    return lambda record: risk_level(record.risk_score) == bucket


def filter_findings(
    findings: Iterable[SecurityFinding],
    *,
    severity: Severity | None = None,
    status: FindingStatus | None = None,
    resource_type: str | None = None,
) -> list[SecurityFinding]:
    predicates: list[Predicate[SecurityFinding]] = []
    if severity is not None:
        predicates.append(lambda f: f.severity == severity)
    if status is not None:
        predicates.append(lambda f: f.status == status)
    if resource_type:
        wanted = resource_type.lower()
        predicates.append(lambda f: f.resource_type.value.lower() == wanted)
    return apply_filters(findings, predicates)


def filter_resources(
    resources: Iterable[AWSResource],
    *,
    resource_type: ResourceType | None = None,
    status: ResourceStatus | None = None,
    region: str | None = None,
    owner: str | None = None,
) -> list[AWSResource]:
    predicates: list[Predicate[AWSResource]] = []
    if resource_type is not None:
        predicates.append(lambda r: r.type == resource_type)
    if status is not None:
        predicates.append(lambda r: r.status == status)
    if region:
        predicates.append(lambda r: r.region == region)
    if owner:
        predicates.append(lambda r: _contains(r.owner, owner))
    return apply_filters(resources, predicates)


def filter_roles(
    roles: Iterable[IAMRole],
    *,
    risk: RiskLevel | None = None,
    search: str | None = None,
) -> list[IAMRole]:
    predicates: list[Predicate[IAMRole]] = []
    if risk is not None:
        predicates.append(_in_risk_bucket(risk))
    if search:
        predicates.append(
            lambda r: _contains(r.name, search)
            or _contains(r.description, search)
            or any(_contains(entity, search) for entity in r.trusted_entities)
        )
    return apply_filters(roles, predicates)


def filter_users(
    users: Iterable[IAMUser],
    *,
    access_level: AccessLevel | None = None,
    mfa_enabled: bool | None = None,
    risk: RiskLevel | None = None,
    search: str | None = None,
) -> list[IAMUser]:
    predicates: list[Predicate[IAMUser]] = []
    if access_level is not None:
        predicates.append(lambda u: u.access_level == access_level)
    if mfa_enabled is not None:
        predicates.append(lambda u: u.mfa_enabled is mfa_enabled)
    if risk is not None:
        predicates.append(_in_risk_bucket(risk))
    if search:
        predicates.append(lambda u: _contains(u.username, search) or _contains(u.email, search))
    return apply_filters(users, predicates)


def filter_workspaces(
    workspaces: Iterable[WorkSpace],
    *,
    state: WorkSpaceState | None = None,
    running_mode: RunningMode | None = None,
    search: str | None = None,
) -> list[WorkSpace]:
    predicates: list[Predicate[WorkSpace]] = []
    if state is not None:
        predicates.append(lambda w: w.state == state)
    if running_mode is not None:
        predicates.append(lambda w: w.running_mode == running_mode)
    if search:
        predicates.append(
            lambda w: _contains(w.name, search)
            or _contains(w.username, search)
            or _contains(w.id, search)
        )
    return apply_filters(workspaces, predicates)


def filter_ai_usage(
    logs: Iterable[AIUsageLog],
    *,
    provider: str | None = None,
    user_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[AIUsageLog]:
    """Filter usage logs; ``start`` and ``end`` are inclusive bounds."""
    predicates: list[Predicate[AIUsageLog]] = []
    if provider:
        predicates.append(lambda log: log.provider == provider)
    if user_id:
        predicates.append(lambda log: log.user_id == user_id)
    if start is not None:
        predicates.append(lambda log: log.timestamp >= start)
    if end is not None:
        predicates.append(lambda log: log.timestamp <= end)
    return apply_filters(logs, predicates)
