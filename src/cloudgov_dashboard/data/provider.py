"""Data provider interface shared by the in-memory and DynamoDB stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from cloudgov_dashboard.domain.models import (
    AIUsageLog,
    AWSResource,
    FindingStatus,
    IAMPolicy,
    IAMRole,
    IAMUser,
    SecurityFinding,
    WorkSpace,
)

T = TypeVar("T")

SOURCE_MOCK = "mock"
SOURCE_DYNAMODB = "dynamodb"

# Only unresolved findings may be resolved or dismissed.
TRANSITIONABLE_STATUSES = frozenset({FindingStatus.OPEN, FindingStatus.IN_PROGRESS})
TERMINAL_STATUSES = frozenset({FindingStatus.RESOLVED, FindingStatus.DISMISSED})


class FindingNotFoundError(LookupError):
    pass


class InvalidFindingTransitionError(ValueError):
    def __init__(self, finding_id: str, current: FindingStatus, target: FindingStatus) -> None:
        super().__init__(
            f"Finding {finding_id} is {current.value} and cannot become {target.value}"
        )
        self.finding_id = finding_id
        self.current = current
        self.target = target


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """A point-in-time copy of a collection and where it came from."""

    items: list[T]
    source: str


def check_transition(finding: SecurityFinding, target: FindingStatus) -> None:
    if target not in TERMINAL_STATUSES or finding.status not in TRANSITIONABLE_STATUSES:
        raise InvalidFindingTransitionError(finding.id, finding.status, target)


class DataProvider(Protocol):
    def list_findings(self) -> Snapshot[SecurityFinding]: ...

    def get_finding(self, finding_id: str) -> SecurityFinding | None: ...

    def set_finding_status(self, finding_id: str, status: FindingStatus) -> SecurityFinding: ...

    def list_resources(self) -> Snapshot[AWSResource]: ...

    def save_resource(self, resource: AWSResource) -> AWSResource: ...

    def list_policies(self) -> list[IAMPolicy]: ...

    def list_roles(self) -> Snapshot[IAMRole]: ...

    def save_role(self, role: IAMRole) -> IAMRole: ...

    def list_users(self) -> Snapshot[IAMUser]: ...

    def save_user(self, user: IAMUser) -> IAMUser: ...

    def list_workspaces(self) -> Snapshot[WorkSpace]: ...

    def get_workspace(self, workspace_id: str) -> WorkSpace | None: ...

    def save_workspace(self, workspace: WorkSpace) -> WorkSpace: ...

    def list_ai_usage(self) -> Snapshot[AIUsageLog]: ...

    def save_ai_usage(self, log: AIUsageLog) -> AIUsageLog: ...
