from __future__ import annotations

from datetime import timedelta

from conftest import FIXED_NOW, make_finding

from cloudgov_dashboard.data.seed import SeedCatalog
from cloudgov_dashboard.domain.models import (
    AccessLevel,
    AWSResource,
    FindingStatus,
    IAMRole,
    IAMUser,
    ResourceStatus,
    ResourceType,
    RiskLevel,
    RunningMode,
    Severity,
    WorkSpaceState,
)
from cloudgov_dashboard.filtering import (
    apply_filters,
    filter_ai_usage,
    filter_findings,
    filter_resources,
    filter_roles,
    filter_users,
    filter_workspaces,
    paginate,
)


def _resource(index: int, **overrides) -> AWSResource:
    data = {
        "id": f"res-{index}",
        "name": f"resource-{index}",
        "type": ResourceType.EC2,
        "status": ResourceStatus.RUNNING,
        "region": "us-east-1",
        "monthly_cost": 10.0,
        "owner": "platform-team",
        "created_at": FIXED_NOW - timedelta(days=100),
        "last_accessed": FIXED_NOW,
    }
    data.update(overrides)
    return AWSResource(**data)


def _role(name: str, risk_score: int, **overrides) -> IAMRole:
    data = {
        "arn": f"arn:aws:iam::123456789012:role/{name}",
        "name": name,
        "description": f"{name} description",
        "created_at": FIXED_NOW,
        "risk_score": risk_score,
    }
    data.update(overrides)
    return IAMRole(**data)


def _user(username: str, risk_score: int, **overrides) -> IAMUser:
    data = {
        "id": f"user-{username}",
        "username": username,
        "arn": f"arn:aws:iam::123456789012:user/{username}",
        "email": f"{username}@company.com",
        "last_activity": FIXED_NOW,
        "access_level": AccessLevel.READ_ONLY,
        "risk_score": risk_score,
    }
    data.update(overrides)
    return IAMUser(**data)


def test_no_predicates_is_identity() -> None:
    items = [3, 1, 2]
    assert apply_filters(items, []) == [3, 1, 2]

    findings = [make_finding(str(i)) for i in range(5)]
    assert filter_findings(findings) == findings


def test_paginate_offset_and_limit_reports_total_before_paging() -> None:
    page = paginate(list(range(10)), offset=5, limit=3)
    assert page.items == [5, 6, 7]
    assert page.total == 10
    assert page.count == 3


def test_paginate_past_the_end_is_empty() -> None:
    page = paginate(list(range(4)), offset=10, limit=5)
    assert page.items == []
    assert page.total == 4


def test_paginate_clamps_negative_values() -> None:
    page = paginate(list(range(4)), offset=-2, limit=-1)
    assert page.offset == 0
    assert page.limit == 0
    assert page.items == []


def test_filter_findings_combines_predicates() -> None:
    findings = [
        make_finding("a", severity=Severity.HIGH, status=FindingStatus.OPEN),
        make_finding("b", severity=Severity.HIGH, status=FindingStatus.RESOLVED),
        make_finding("c", severity=Severity.LOW, status=FindingStatus.OPEN),
        make_finding("d", severity=Severity.HIGH, resource_type=ResourceType.S3),
    ]
    result = filter_findings(
        findings,
        severity=Severity.HIGH,
        status=FindingStatus.OPEN,
        resource_type="ec2",
    )
    assert [f.id for f in result] == ["a"]


def test_filter_findings_resource_type_is_case_insensitive() -> None:
    findings = [make_finding("a", resource_type=ResourceType.API_GATEWAY)]
    assert filter_findings(findings, resource_type="api gateway") == findings
    assert filter_findings(findings, resource_type="API GATEWAY") == findings


def test_filter_resources_owner_substring_and_region() -> None:
    resources = [
        _resource(1, owner="Data-Engineering"),
        _resource(2, owner="platform-team"),
        _resource(3, owner="data-engineering", region="eu-west-1"),
    ]
    result = filter_resources(resources, owner="engineering", region="us-east-1")
    assert [r.id for r in result] == ["res-1"]


def test_filter_resources_type_and_status() -> None:
    resources = [
        _resource(1, type=ResourceType.S3),
        _resource(2, type=ResourceType.S3, status=ResourceStatus.STOPPED),
        _resource(3),
    ]
    result = filter_resources(
        resources, resource_type=ResourceType.S3, status=ResourceStatus.STOPPED
    )
    assert [r.id for r in result] == ["res-2"]


def test_filter_output_is_subset_preserving_order() -> None:
    resources = [_resource(i, region="us-west-2" if i % 2 else "us-east-1") for i in range(10)]
    result = filter_resources(resources, region="us-west-2")
    assert all(r in resources for r in result)
    assert [r.id for r in result] == ["res-1", "res-3", "res-5", "res-7", "res-9"]


def test_filter_roles_by_risk_bucket_and_search() -> None:
    roles = [
        _role("AdminRole", 95),
        _role("DeveloperRole", 65),
        _role("AuditRole", 45),
        _role("LambdaRole", 15, trusted_entities=["lambda.amazonaws.com"]),
    ]
    assert [r.name for r in filter_roles(roles, risk=RiskLevel.HIGH)] == [
        "AdminRole",
        "DeveloperRole",
    ]
    assert [r.name for r in filter_roles(roles, risk=RiskLevel.MEDIUM)] == ["AuditRole"]
    assert [r.name for r in filter_roles(roles, search="LAMBDA.amazonaws")] == ["LambdaRole"]
    assert [r.name for r in filter_roles(roles, search="developerrole description")] == [
        "DeveloperRole"
    ]


def test_filter_users_by_access_mfa_and_search() -> None:
    users = [
        _user("john.admin", 85, access_level=AccessLevel.ADMIN, mfa_enabled=True),
        _user("alice.power", 65, access_level=AccessLevel.POWER_USER),
        _user("bob.readonly", 10, mfa_enabled=True),
        _user("frank", 20, email="frank@external.com"),
    ]
    assert [u.username for u in filter_users(users, mfa_enabled=False)] == [
        "alice.power",
        "frank",
    ]
    assert [u.username for u in filter_users(users, access_level=AccessLevel.ADMIN)] == [
        "john.admin"
    ]
    assert [u.username for u in filter_users(users, search="EXTERNAL")] == ["frank"]
    assert [u.username for u in filter_users(users, risk=RiskLevel.LOW, mfa_enabled=True)] == [
        "bob.readonly"
    ]


def test_filter_workspaces_by_state_mode_and_search(catalog: SeedCatalog) -> None:
    workspaces = catalog.workspaces

    available_auto = filter_workspaces(
        workspaces, state=WorkSpaceState.AVAILABLE, running_mode=RunningMode.AUTO_STOP
    )
    assert [w.id for w in available_auto] == ["ws-abc123def", "ws-mno345pqr", "ws-vwx234yza"]
    assert [w.id for w in filter_workspaces(workspaces, search="WS-PQR")] == ["ws-pqr678stu"]
    assert [w.name for w in filter_workspaces(workspaces, search="alice")] == [
        "Alice PowerUser Desktop"
    ]
    assert filter_workspaces(workspaces) == workspaces


def test_filter_ai_usage_bounds_are_inclusive(catalog: SeedCatalog) -> None:
    logs = catalog.ai_usage_logs
    noon = logs[2].timestamp

    assert [log.id for log in filter_ai_usage(logs, start=noon, end=noon)] == ["log-003"]
    bedrock = filter_ai_usage(logs, provider="AWS Bedrock", user_id="user-789")
    assert [log.id for log in bedrock] == ["log-007"]
    assert filter_ai_usage(logs, provider="bedrock") == []
