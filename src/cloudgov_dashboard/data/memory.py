"""In-memory data provider seeded from the YAML catalog."""

from __future__ import annotations

import logging
import random
import string
import threading
from collections.abc import Callable
from datetime import datetime

from cloudgov_dashboard.data.provider import (
    SOURCE_MOCK,
    FindingNotFoundError,
    Snapshot,
    check_transition,
)
from cloudgov_dashboard.data.seed import SeedCatalog
from cloudgov_dashboard.domain.models import (
    AIUsageLog,
    AWSResource,
    FindingStatus,
    IAMPolicy,
    IAMRole,
    IAMUser,
    ResourceStatus,
    ResourceType,
    SecurityFinding,
    Severity,
    WorkSpace,
)
from cloudgov_dashboard.utils.time import days_ago, utc_now

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits

SEVERITY_ORDER: dict[Severity, int] = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}

FINDING_MAX_AGE_DAYS = 60

_RESOURCE_STATUS_WEIGHTS: tuple[tuple[ResourceStatus, int], ...] = (
    (ResourceStatus.RUNNING, 70),
    (ResourceStatus.STOPPED, 15),
    (ResourceStatus.PENDING, 5),
    (ResourceStatus.TERMINATED, 5),
    (ResourceStatus.ERROR, 5),
)


def _random_id(rng: random.Random, length: int) -> str:
    return "".join(rng.choice(_ID_ALPHABET) for _ in range(length))


def _type_slug(resource_type: ResourceType) -> str:
    return resource_type.value.lower().replace(" ", "-")


def sort_findings(findings: list[SecurityFinding]) -> list[SecurityFinding]:
    """Most severe first, newest first within a severity."""
    return sorted(
        findings,
        key=lambda f: (SEVERITY_ORDER[f.severity], -f.detected_at.timestamp()),
    )


def generate_findings(
    catalog: SeedCatalog,
    count: int,
    rng: random.Random,
    now: datetime,
) -> list[SecurityFinding]:
    templates = catalog.finding_templates
    if not templates:
        return []
    statuses = list(FindingStatus)
    findings: list[SecurityFinding] = []
    for index in range(count):
        template = templates[index % len(templates)]
        findings.append(
            SecurityFinding(
                id=f"finding-{_random_id(rng, 12)}",
                title=template.title,
                description=template.description,
                severity=template.severity,
                resource_id=f"{_type_slug(template.resource_type)}-{_random_id(rng, 9)}",
                resource_type=template.resource_type,
                detected_at=days_ago(rng.randrange(FINDING_MAX_AGE_DAYS), now),
                status=rng.choice(statuses),
                remediation=template.remediation,
            )
        )
    return sort_findings(findings)


def generate_resources(
    catalog: SeedCatalog,
    count: int,
    rng: random.Random,
    now: datetime,
) -> list[AWSResource]:
    inventory = catalog.inventory
    types = list(ResourceType)
    statuses = [status for status, _ in _RESOURCE_STATUS_WEIGHTS]
    weights = [weight for _, weight in _RESOURCE_STATUS_WEIGHTS]
    resources: list[AWSResource] = []
    for index in range(count):
        resource_type = types[index % len(types)]
        prefix = inventory.name_prefixes.get(resource_type, _type_slug(resource_type))
        low, high = inventory.monthly_cost.get(resource_type, (0.0, 100.0))
        owner = rng.choice(inventory.owners)
        environment = rng.choice(inventory.environments)
        resources.append(
            AWSResource(
                id=f"{_type_slug(resource_type)}-{_random_id(rng, 8)}",
                name=f"{prefix}-{index + 1:02d}",
                type=resource_type,
                status=rng.choices(statuses, weights=weights)[0],
                region=rng.choice(inventory.regions),
                monthly_cost=round(rng.uniform(low, high), 2),
                owner=owner,
                created_at=days_ago(rng.randint(30, 720), now),
                last_accessed=days_ago(rng.randint(0, 29), now),
                tags={"Environment": environment, "Owner": owner},
            )
        )
    return resources


class InMemoryDataProvider:
    """Process-local store built once at startup.

    Reads return copies of the current collections. Saves and finding status
    transitions are serialized by a lock.
    """

    def __init__(
        self,
        catalog: SeedCatalog,
        *,
        rng: random.Random | None = None,
        finding_count: int = 20,
        resource_count: int = 40,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        rng = rng or random.Random()
        now = clock()
        self.catalog = catalog
        self._lock = threading.Lock()
        self._policies = list(catalog.policies)
        self._roles = catalog.build_roles()
        self._users = catalog.build_users()
        self._workspaces = list(catalog.workspaces)
        self._ai_usage = list(catalog.ai_usage_logs)
        self._findings = generate_findings(catalog, finding_count, rng, now)
        self._resources = generate_resources(catalog, resource_count, rng, now)
        logger.info(
            "Seeded in-memory store: %d findings, %d resources, %d roles, %d users, "
            "%d workspaces, %d AI usage logs",
            len(self._findings),
            len(self._resources),
            len(self._roles),
            len(self._users),
            len(self._workspaces),
            len(self._ai_usage),
        )

    def list_findings(self) -> Snapshot[SecurityFinding]:
        with self._lock:
            return Snapshot(list(self._findings), SOURCE_MOCK)

    def get_finding(self, finding_id: str) -> SecurityFinding | None:
        with self._lock:
            return next((f for f in self._findings if f.id == finding_id), None)

    def set_finding_status(self, finding_id: str, status: FindingStatus) -> SecurityFinding:
        with self._lock:
            for index, finding in enumerate(self._findings):
                if finding.id != finding_id:
                    continue
                check_transition(finding, status)
                updated = finding.model_copy(update={"status": status})
                self._findings[index] = updated
                logger.info(
                    "Finding %s moved %s -> %s",
                    finding_id,
                    finding.status.value,
                    status.value,
                )
                return updated
        raise FindingNotFoundError(finding_id)

    def list_resources(self) -> Snapshot[AWSResource]:
        with self._lock:
            return Snapshot(list(self._resources), SOURCE_MOCK)

    def save_resource(self, resource: AWSResource) -> AWSResource:
        with self._lock:
            self._upsert(self._resources, resource, key=lambda r: r.id)
        return resource

    def list_policies(self) -> list[IAMPolicy]:
        return list(self._policies)

    def list_roles(self) -> Snapshot[IAMRole]:
        with self._lock:
            return Snapshot(list(self._roles), SOURCE_MOCK)

    def save_role(self, role: IAMRole) -> IAMRole:
        with self._lock:
            self._upsert(self._roles, role, key=lambda r: r.arn)
        return role

    def list_users(self) -> Snapshot[IAMUser]:
        with self._lock:
            return Snapshot(list(self._users), SOURCE_MOCK)

    def save_user(self, user: IAMUser) -> IAMUser:
        with self._lock:
            self._upsert(self._users, user, key=lambda u: u.id)
        return user

    def list_workspaces(self) -> Snapshot[WorkSpace]:
        with self._lock:
            return Snapshot(list(self._workspaces), SOURCE_MOCK)

    def get_workspace(self, workspace_id: str) -> WorkSpace | None:
        with self._lock:
            return next((w for w in self._workspaces if w.id == workspace_id), None)

    def save_workspace(self, workspace: WorkSpace) -> WorkSpace:
        with self._lock:
            self._upsert(self._workspaces, workspace, key=lambda w: w.id)
        return workspace

    def list_ai_usage(self) -> Snapshot[AIUsageLog]:
        with self._lock:
            return Snapshot(list(self._ai_usage), SOURCE_MOCK)

    def save_ai_usage(self, log: AIUsageLog) -> AIUsageLog:
        with self._lock:
            self._ai_usage.append(log)
        return log

    @staticmethod
    def _upsert(records: list, record: object, key: Callable[[object], str]) -> None:
        record_key = key(record)
        for index, existing in enumerate(records):
            if key(existing) == record_key:
                records[index] = record
                return
        records.append(record)
