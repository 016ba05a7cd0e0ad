from __future__ import annotations

import random

import pytest
from conftest import FIXED_NOW

from cloudgov_dashboard.data.memory import (
    SEVERITY_ORDER,
    InMemoryDataProvider,
    generate_resources,
    sort_findings,
)
from cloudgov_dashboard.data.provider import (
    SOURCE_MOCK,
    TRANSITIONABLE_STATUSES,
    FindingNotFoundError,
    InvalidFindingTransitionError,
)
from cloudgov_dashboard.data.seed import SeedCatalog
from cloudgov_dashboard.domain.models import (
    AccessLevel,
    FindingStatus,
    IAMUser,
    ResourceType,
    WorkSpaceState,
)


def _first_transitionable(provider: InMemoryDataProvider):
    return next(
        finding
        for finding in provider.list_findings().items
        if finding.status in TRANSITIONABLE_STATUSES
    )


def test_generates_requested_counts(memory_provider: InMemoryDataProvider) -> None:
    findings = memory_provider.list_findings()
    resources = memory_provider.list_resources()
    assert findings.source == SOURCE_MOCK
    assert len(findings.items) == 20
    assert len(resources.items) == 30
    assert len(memory_provider.list_roles().items) == 6
    assert len(memory_provider.list_users().items) == 8
    assert len(memory_provider.list_policies()) == 5
    assert len(memory_provider.list_workspaces().items) == 8
    assert len(memory_provider.list_ai_usage().items) == 8


def test_findings_are_sorted_by_severity_then_newest(
    memory_provider: InMemoryDataProvider,
) -> None:
    findings = memory_provider.list_findings().items
    keys = [(SEVERITY_ORDER[f.severity], -f.detected_at.timestamp()) for f in findings]
    assert keys == sorted(keys)
    assert sort_findings(findings) == findings


def test_generated_findings_are_not_in_the_future(
    memory_provider: InMemoryDataProvider,
) -> None:
    findings = memory_provider.list_findings().items
    assert all(f.detected_at <= FIXED_NOW for f in findings)
    assert all(f.id.startswith("finding-") for f in findings)


def test_same_seed_produces_same_data(catalog: SeedCatalog) -> None:
    def build() -> InMemoryDataProvider:
        return InMemoryDataProvider(catalog, rng=random.Random(5), clock=lambda: FIXED_NOW)

    assert build().list_findings().items == build().list_findings().items
    assert build().list_resources().items == build().list_resources().items


def test_generated_resources_use_inventory_pools(catalog: SeedCatalog) -> None:
    resources = generate_resources(catalog, 20, random.Random(3), FIXED_NOW)
    assert {r.type for r in resources} == set(ResourceType)
    for resource in resources:
        low, high = catalog.inventory.monthly_cost[resource.type]
        assert low <= resource.monthly_cost <= high
        assert resource.region in catalog.inventory.regions
        assert resource.tags["Owner"] == resource.owner


def test_listing_returns_copies(memory_provider: InMemoryDataProvider) -> None:
    memory_provider.list_findings().items.clear()
    assert len(memory_provider.list_findings().items) == 20


def test_resolve_then_dismiss_is_rejected(memory_provider: InMemoryDataProvider) -> None:
    finding = _first_transitionable(memory_provider)

    updated = memory_provider.set_finding_status(finding.id, FindingStatus.RESOLVED)

    assert updated.status is FindingStatus.RESOLVED
    assert memory_provider.get_finding(finding.id).status is FindingStatus.RESOLVED
    with pytest.raises(InvalidFindingTransitionError) as excinfo:
        memory_provider.set_finding_status(finding.id, FindingStatus.DISMISSED)
    assert excinfo.value.current is FindingStatus.RESOLVED


def test_cannot_reopen_a_finding(memory_provider: InMemoryDataProvider) -> None:
    finding = _first_transitionable(memory_provider)
    with pytest.raises(InvalidFindingTransitionError):
        memory_provider.set_finding_status(finding.id, FindingStatus.OPEN)


def test_unknown_finding(memory_provider: InMemoryDataProvider) -> None:
    assert memory_provider.get_finding("finding-missing") is None
    with pytest.raises(FindingNotFoundError):
        memory_provider.set_finding_status("finding-missing", FindingStatus.DISMISSED)


def test_save_user_appends_and_upserts(memory_provider: InMemoryDataProvider) -> None:
    user = IAMUser(
        id="user-new",
        username="new.user",
        arn="arn:aws:iam::123456789012:user/new.user",
        email="new.user@company.com",
        last_activity=FIXED_NOW,
        access_level=AccessLevel.READ_ONLY,
        risk_score=35,
    )
    memory_provider.save_user(user)
    memory_provider.save_user(user.model_copy(update={"risk_score": 5}))

    saved = [u for u in memory_provider.list_users().items if u.id == "user-new"]
    assert len(saved) == 1
    assert saved[0].risk_score == 5


def test_save_role_is_keyed_by_arn(memory_provider: InMemoryDataProvider) -> None:
    role = memory_provider.list_roles().items[0]
    memory_provider.save_role(role.model_copy(update={"description": "updated"}))

    roles = memory_provider.list_roles().items
    assert len(roles) == 6
    assert roles[0].description == "updated"


def test_save_workspace_upserts_by_id(memory_provider: InMemoryDataProvider) -> None:
    workspace = memory_provider.get_workspace("ws-abc123def")
    memory_provider.save_workspace(workspace.model_copy(update={"state": WorkSpaceState.STOPPED}))

    assert len(memory_provider.list_workspaces().items) == 8
    assert memory_provider.get_workspace("ws-abc123def").state is WorkSpaceState.STOPPED
    assert memory_provider.get_workspace("ws-missing") is None


def test_save_ai_usage_appends(memory_provider: InMemoryDataProvider) -> None:
    log = memory_provider.list_ai_usage().items[0]
    memory_provider.save_ai_usage(log.model_copy(update={"id": "log-new"}))

    logs = memory_provider.list_ai_usage().items
    assert len(logs) == 9
    assert logs[-1].id == "log-new"
