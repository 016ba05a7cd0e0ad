"""Route handlers for the dashboard API.

Each handler pulls the shared ``AppContext`` from ``request.app.state``, so
tests can mount the routes over any provider.  Provider calls run in a worker
thread because the DynamoDB provider blocks on network I/O.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import Response

from cloudgov_dashboard.data.provider import (
    SOURCE_DYNAMODB,
    FindingNotFoundError,
    InvalidFindingTransitionError,
)
from cloudgov_dashboard.domain.models import (
    AccessLevel,
    AIUsageLog,
    AWSResource,
    FindingStatus,
    IAMRole,
    IAMUser,
    RiskLevel,
    WorkSpace,
    WorkSpaceAction,
    WorkSpaceState,
)
from cloudgov_dashboard.filtering import (
    filter_ai_usage,
    filter_findings,
    filter_resources,
    filter_roles,
    filter_users,
    filter_workspaces,
    paginate,
)
from cloudgov_dashboard.scoring.compliance import score_findings
from cloudgov_dashboard.scoring.iam_risk import (
    default_permissions,
    risk_level,
    score_role,
    score_user,
)
from cloudgov_dashboard.services.ai_usage import summarize_ai_usage
from cloudgov_dashboard.services.connection_status import check_connections
from cloudgov_dashboard.services.workspaces import (
    InvalidWorkspaceActionError,
    WorkspaceNotFoundError,
    bulk_workspace_action,
    modify_workspace,
    monthly_cost_for,
    perform_workspace_action,
    recommend_for_workspaces,
    summarize_workspaces,
)
from cloudgov_dashboard.transport.responses import (
    EnvelopeJSONResponse,
    error_response,
    success_response,
)
from cloudgov_dashboard.transport.schemas import (
    AIUsageQuery,
    BulkWorkspaceRequest,
    CostsQuery,
    CreateAIUsageRequest,
    CreateResourceRequest,
    CreateRoleRequest,
    CreateUserRequest,
    CreateWorkspaceRequest,
    ModifyWorkspaceRequest,
    ResourcesQuery,
    RolesQuery,
    SecurityQuery,
    UsersQuery,
    WorkspaceActionRequest,
    WorkspacesQuery,
)
from cloudgov_dashboard.utils.time import utc_now, utc_now_iso

if TYPE_CHECKING:
    from cloudgov_dashboard.app import AppContext

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
Handler = Callable[[Request], Awaitable[Response]]

INACTIVITY_WINDOW = timedelta(days=30)
COST_CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=600"
COST_NOTE = "This is mock data. In production, this would connect to AWS Cost Explorer API."
DYNAMODB_NOTE = "Data from DynamoDB"
MOCK_NOTE = "Using local mock data. Set USE_REAL_AWS=true to enable DynamoDB."


class RequestValidationFailed(Exception):
    """Raised when a query string or JSON body does not validate."""

    def __init__(self, error: str, details: list[Any]) -> None:
        super().__init__(error)
        self.error = error
        self.details = details


def api_handler(action: str) -> Callable[[Handler], Handler]:
    """Map validation failures to 400 and anything unexpected to a logged 500."""

    def decorator(func: Handler) -> Handler:
        @functools.wraps(func)
        async def wrapper(request: Request) -> Response:
            try:
                return await func(request)
            except RequestValidationFailed as exc:
                return error_response(exc.error, 400, exc.details)
            except Exception:
                logger.exception("Failed to %s", action)
                return error_response("Internal server error", 500)

        return wrapper

    return decorator


def _context(request: Request) -> AppContext:
    return request.app.state.context


def _parse_query(model: type[ModelT], request: Request) -> ModelT:
    try:
        return model.model_validate(dict(request.query_params))
    except ValidationError as exc:
        raise RequestValidationFailed(
            "Invalid query parameters",
            exc.errors(include_url=False, include_context=False),
        ) from exc


async def _parse_body(model: type[ModelT], request: Request) -> ModelT:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RequestValidationFailed(
            "Invalid request body",
            [{"type": "json_invalid", "loc": ["body"], "msg": str(exc)}],
        ) from exc
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationFailed(
            "Invalid request body",
            exc.errors(include_url=False, include_context=False),
        ) from exc


async def _simulate_latency(ctx: AppContext) -> None:
    delay_ms = ctx.settings.mock.latency_ms
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)


def _source_metadata(source: str) -> dict[str, str]:
    note = DYNAMODB_NOTE if source == SOURCE_DYNAMODB else MOCK_NOTE
    return {"source": source, "note": note}


def new_record_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _average(scores: Sequence[int]) -> float:
    return sum(scores) / len(scores) if scores else 0


def _count_by_risk(records: Sequence[IAMRole] | Sequence[IAMUser]) -> dict[str, int]:
    counts = {level: 0 for level in RiskLevel}
    for record in records:
        counts[risk_level(record.risk_score)] += 1
    return {
        "highRisk": counts[RiskLevel.HIGH],
        "mediumRisk": counts[RiskLevel.MEDIUM],
        "lowRisk": counts[RiskLevel.LOW],
    }


def summarize_roles(roles: Sequence[IAMRole]) -> dict[str, Any]:
    return {
        "totalRoles": len(roles),
        **_count_by_risk(roles),
        "overlyPermissive": sum(1 for role in roles if role.is_overly_permissive),
        "withBoundary": sum(1 for role in roles if role.permissions_boundary),
        "averageRiskScore": _average([role.risk_score for role in roles]),
    }


def summarize_users(users: Sequence[IAMUser], now: datetime | None = None) -> dict[str, Any]:
    cutoff = (now or utc_now()) - INACTIVITY_WINDOW
    active = sum(1 for user in users if user.last_activity > cutoff)
    mfa = sum(1 for user in users if user.mfa_enabled)
    return {
        "totalUsers": len(users),
        "activeUsers": active,
        "inactiveUsers": len(users) - active,
        "mfaEnabled": mfa,
        "mfaDisabled": len(users) - mfa,
        "byAccessLevel": {
            "admin": sum(1 for u in users if u.access_level is AccessLevel.ADMIN),
            "powerUser": sum(1 for u in users if u.access_level is AccessLevel.POWER_USER),
            "readOnly": sum(1 for u in users if u.access_level is AccessLevel.READ_ONLY),
        },
        **_count_by_risk(users),
        "averageRiskScore": _average([user.risk_score for user in users]),
    }


def recommend_for_users(
    users: Sequence[IAMUser],
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Least-privilege recommendations, most actionable first."""
    cutoff = (now or utc_now()) - INACTIVITY_WINDOW
    recommendations: list[dict[str, Any]] = []

    no_mfa = [user.username for user in users if not user.mfa_enabled]
    if no_mfa:
        recommendations.append(
            {
                "type": "security",
                "severity": "high",
                "title": "Enable MFA for all users",
                "description": f"{len(no_mfa)} user(s) do not have MFA enabled",
                "affectedUsers": no_mfa,
            }
        )

    inactive = [user.username for user in users if user.last_activity <= cutoff]
    if inactive:
        recommendations.append(
            {
                "type": "access",
                "severity": "medium",
                "title": "Review inactive users",
                "description": f"{len(inactive)} user(s) have been inactive for >30 days",
                "affectedUsers": inactive,
            }
        )

    high_risk = [
        user.username for user in users if risk_level(user.risk_score) is RiskLevel.HIGH
    ]
    if high_risk:
        recommendations.append(
            {
                "type": "permissions",
                "severity": "high",
                "title": "Reduce excessive permissions",
                "description": f"{len(high_risk)} user(s) have high-risk permission sets",
                "affectedUsers": high_risk,
            }
        )

    return recommendations


async def health(request: Request) -> Response:
    ctx = _context(request)
    return EnvelopeJSONResponse(
        {
            "status": "healthy",
            "timestamp": utc_now_iso(),
            "environment": ctx.settings.server.environment,
            "components": {
                "api": "operational",
                "database": "operational",
                "aws": "enabled" if ctx.settings.aws.use_real_aws else "mock",
            },
        }
    )


@api_handler("generate cost data")
async def get_costs(request: Request) -> Response:
    ctx = _context(request)
    query = _parse_query(CostsQuery, request)
    await _simulate_latency(ctx)

    report = ctx.cost_generator.generate(query.range)
    data: dict[str, Any] = {
        "costs": [point.to_json_dict() for point in report.costs],
        "summary": report.summary.to_json_dict(),
        "range": query.range.value,
        "groupBy": query.group_by.value,
    }
    breakdown = ctx.cost_generator.breakdown(query.group_by)
    if breakdown is not None:
        data["breakdown"] = [item.to_json_dict() for item in breakdown]

    return success_response(
        data,
        metadata={
            "count": len(report.costs),
            "totalCost": sum(point.cost for point in report.costs),
            "mock": True,
            "note": COST_NOTE,
        },
        headers={"Cache-Control": COST_CACHE_CONTROL},
    )


async def create_cost_alert(request: Request) -> Response:
    return error_response("Method not implemented", 501)


@api_handler("list resources")
async def list_resources(request: Request) -> Response:
    ctx = _context(request)
    query = _parse_query(ResourcesQuery, request)
    await _simulate_latency(ctx)

    snapshot = await asyncio.to_thread(ctx.provider.list_resources)
    matching = filter_resources(
        snapshot.items,
        resource_type=query.resource_type,
        status=query.status,
        region=query.region,
        owner=query.owner,
    )
    page = paginate(matching, query.offset, query.limit)
    return success_response(
        [resource.to_json_dict() for resource in page.items],
        metadata={
            "total": page.total,
            "offset": page.offset,
            "limit": page.limit,
            "count": page.count,
            **_source_metadata(snapshot.source),
        },
    )


@api_handler("create resource")
async def create_resource(request: Request) -> Response:
    ctx = _context(request)
    body = await _parse_body(CreateResourceRequest, request)
    now = utc_now()
    resource = AWSResource(**body.model_dump(), created_at=now, last_accessed=now)
    saved = await asyncio.to_thread(ctx.provider.save_resource, resource)
    logger.info("Saved resource %s (%s)", saved.id, saved.type.value)
    return success_response(
        saved.to_json_dict(),
        message="Resource saved successfully",
        status_code=201,
    )


@api_handler("list security findings")
async def list_findings(request: Request) -> Response:
    ctx = _context(request)
    query = _parse_query(SecurityQuery, request)
    await _simulate_latency(ctx)

    snapshot = await asyncio.to_thread(ctx.provider.list_findings)
    matching = filter_findings(
        snapshot.items,
        severity=query.severity,
        status=query.status,
        resource_type=query.resource_type,
    )
    page = paginate(matching, 0, query.limit)
    compliance = score_findings(snapshot.items)
    return success_response(
        {
            "findings": [finding.to_json_dict() for finding in page.items],
            "compliance": compliance.to_json_dict(),
        },
        metadata={
            "total": page.total,
            "filtered": bool(query.severity or query.status or query.resource_type),
        },
    )


@api_handler("compute compliance score")
async def get_compliance(request: Request) -> Response:
    ctx = _context(request)
    snapshot = await asyncio.to_thread(ctx.provider.list_findings)
    return success_response(score_findings(snapshot.items).to_json_dict())


async def _transition_finding(request: Request, target: FindingStatus) -> Response:
    ctx = _context(request)
    finding_id = request.path_params["finding_id"]
    try:
        finding = await asyncio.to_thread(ctx.provider.set_finding_status, finding_id, target)
    except FindingNotFoundError:
        return error_response(f"Finding not found: {finding_id}", 404)
    except InvalidFindingTransitionError as exc:
        return error_response(str(exc), 409)
    return success_response(finding.to_json_dict(), message=f"Finding {target.value}")


@api_handler("resolve finding")
async def resolve_finding(request: Request) -> Response:
    return await _transition_finding(request, FindingStatus.RESOLVED)


@api_handler("dismiss finding")
async def dismiss_finding(request: Request) -> Response:
    return await _transition_finding(request, FindingStatus.DISMISSED)


@api_handler("fetch IAM roles")
async def list_roles(request: Request) -> Response:
    ctx = _context(request)
    query = _parse_query(RolesQuery, request)
    await _simulate_latency(ctx)

    snapshot = await asyncio.to_thread(ctx.provider.list_roles)
    matching = filter_roles(snapshot.items, risk=query.risk_level, search=query.search)
    page = paginate(matching, query.offset, query.limit)
    policies = ctx.provider.list_policies()
    return success_response(
        {
            "roles": [role.to_json_dict() for role in page.items],
            "summary": summarize_roles(snapshot.items),
            "policies": [policy.to_json_dict() for policy in policies],
        },
        metadata={
            **_source_metadata(snapshot.source),
            "total": page.total,
            "offset": page.offset,
            "limit": page.limit,
            "count": page.count,
        },
    )


@api_handler("create IAM role")
async def create_role(request: Request) -> Response:
    ctx = _context(request)
    body = await _parse_body(CreateRoleRequest, request)
    existing = await asyncio.to_thread(ctx.provider.list_roles)
    # IAM role names are unique per account regardless of case.
    if any(role.name.lower() == body.name.lower() for role in existing.items):
        return error_response(f"IAM role already exists: {body.name}", 409)
    catalog = {policy.id: policy for policy in ctx.provider.list_policies()}
    assessment = score_role(body.policies, catalog, bool(body.permissions_boundary))
    role = IAMRole(
        arn=ctx.catalog.role_arn(body.name),
        name=body.name,
        description=body.description,
        created_at=utc_now(),
        policies=list(assessment.policies),
        is_overly_permissive=assessment.is_overly_permissive,
        trusted_entities=body.trusted_entities,
        permissions_boundary=body.permissions_boundary,
        risk_score=assessment.risk_score,
    )
    saved = await asyncio.to_thread(ctx.provider.save_role, role)
    logger.info("Created IAM role %s with risk score %d", saved.name, saved.risk_score)
    return success_response(saved.to_json_dict(), message="IAM role created successfully")


@api_handler("fetch IAM users")
async def list_users(request: Request) -> Response:
    ctx = _context(request)
    query = _parse_query(UsersQuery, request)
    await _simulate_latency(ctx)

    snapshot = await asyncio.to_thread(ctx.provider.list_users)
    matching = filter_users(
        snapshot.items,
        access_level=query.access_level,
        mfa_enabled=query.mfa_enabled,
        risk=query.risk_level,
        search=query.search,
    )
    page = paginate(matching, query.offset, query.limit)
    now = utc_now()
    return success_response(
        {
            "users": [user.to_json_dict() for user in page.items],
            "summary": summarize_users(snapshot.items, now),
            "recommendations": recommend_for_users(snapshot.items, now),
        },
        metadata={
            **_source_metadata(snapshot.source),
            "total": page.total,
            "offset": page.offset,
            "limit": page.limit,
            "count": page.count,
        },
    )


@api_handler("create IAM user")
async def create_user(request: Request) -> Response:
    ctx = _context(request)
    body = await _parse_body(CreateUserRequest, request)
    existing = await asyncio.to_thread(ctx.provider.list_users)
    if any(user.username.lower() == body.username.lower() for user in existing.items):
        return error_response(f"IAM user already exists: {body.username}", 409)
    user = IAMUser(
        id=new_record_id("user"),
        username=body.username,
        arn=ctx.catalog.user_arn(body.username),
        email=body.email,
        roles=body.roles,
        permissions=default_permissions(body.access_level),
        mfa_enabled=body.mfa_enabled,
        last_activity=utc_now(),
        access_level=body.access_level,
        risk_score=score_user(body.access_level, body.mfa_enabled),
    )
    saved = await asyncio.to_thread(ctx.provider.save_user, user)
    logger.info("Created IAM user %s with risk score %d", saved.username, saved.risk_score)
    return success_response(saved.to_json_dict(), message="IAM user created successfully")


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def _workspace_action_response(
    ctx: AppContext,
    workspace_id: str,
    action: WorkSpaceAction,
    message: str,
) -> Response:
    try:
        workspace = await asyncio.to_thread(
            perform_workspace_action, ctx.provider, workspace_id, action
        )
    except WorkspaceNotFoundError:
        return error_response(f"WorkSpace not found: {workspace_id}", 404)
    except InvalidWorkspaceActionError as exc:
        return error_response(str(exc), 409)
    logger.info("WorkSpace %s: %s -> %s", workspace.id, action.value, workspace.state.value)
    return success_response(
        {
            "workspaceId": workspace.id,
            "action": action.value,
            "status": "initiated",
            "state": workspace.state.value,
        },
        message=message,
    )


@api_handler("fetch WorkSpaces")
async def list_workspaces(request: Request) -> Response:
    ctx = _context(request)
    query = _parse_query(WorkspacesQuery, request)
    await _simulate_latency(ctx)

    snapshot = await asyncio.to_thread(ctx.provider.list_workspaces)
    matching = filter_workspaces(
        snapshot.items,
        state=query.state,
        running_mode=query.running_mode,
        search=query.search,
    )
    page = paginate(matching, query.offset, query.limit)
    return success_response(
        {
            "workspaces": [workspace.to_json_dict() for workspace in page.items],
            "summary": summarize_workspaces(snapshot.items),
            "recommendations": recommend_for_workspaces(snapshot.items, utc_now()),
        },
        metadata={
            **_source_metadata(snapshot.source),
            "total": page.total,
            "offset": page.offset,
            "limit": page.limit,
            "count": page.count,
        },
    )


@api_handler("create WorkSpace")
async def create_workspace(request: Request) -> Response:
    ctx = _context(request)
    body = await _parse_body(CreateWorkspaceRequest, request)
    workspace = WorkSpace(
        id=new_record_id("ws"),
        name=body.name,
        directory_id=body.directory_id,
        username=body.username,
        bundle_id=body.bundle_id,
        bundle_name=f"{body.compute_type.value} with Windows 10",
        state=WorkSpaceState.PENDING,
        running_mode=body.running_mode,
        subnet_id="subnet-abc123",
        monthly_cost=monthly_cost_for(body.compute_type, body.running_mode),
        compute_type=body.compute_type,
    )
    saved = await asyncio.to_thread(ctx.provider.save_workspace, workspace)
    logger.info("Created WorkSpace %s for %s", saved.id, saved.username)
    return success_response(saved.to_json_dict(), message="WorkSpace creation initiated")


@api_handler("run WorkSpace action")
async def workspace_action(request: Request) -> Response:
    body = await _parse_body(WorkspaceActionRequest, request)
    return await _workspace_action_response(
        _context(request),
        body.workspace_id,
        body.action,
        f"WorkSpace {body.action.value} initiated",
    )


@api_handler("reboot WorkSpace")
async def reboot_workspace(request: Request) -> Response:
    return await _workspace_action_response(
        _context(request),
        request.path_params["workspace_id"],
        WorkSpaceAction.REBOOT,
        "WorkSpace reboot initiated",
    )


@api_handler("delete WorkSpace")
async def terminate_workspace(request: Request) -> Response:
    return await _workspace_action_response(
        _context(request),
        request.path_params["workspace_id"],
        WorkSpaceAction.TERMINATE,
        "WorkSpace termination initiated",
    )


@api_handler("modify WorkSpace")
async def update_workspace(request: Request) -> Response:
    ctx = _context(request)
    workspace_id = request.path_params["workspace_id"]
    body = await _parse_body(ModifyWorkspaceRequest, request)
    try:
        workspace = await asyncio.to_thread(
            modify_workspace,
            ctx.provider,
            workspace_id,
            body.running_mode,
            body.running_mode_auto_stop_timeout_in_minutes,
        )
    except WorkspaceNotFoundError:
        return error_response(f"WorkSpace not found: {workspace_id}", 404)
    except InvalidWorkspaceActionError as exc:
        return error_response(str(exc), 409)
    return success_response(workspace.to_json_dict(), message="WorkSpace modified successfully")


@api_handler("execute bulk operation")
async def bulk_workspaces(request: Request) -> Response:
    ctx = _context(request)
    body = await _parse_body(BulkWorkspaceRequest, request)
    succeeded, failed = await asyncio.to_thread(
        bulk_workspace_action, ctx.provider, body.workspace_ids, body.action
    )
    batch_id = new_record_id("batch")
    logger.info(
        "Bulk %s %s: %d succeeded, %d failed",
        body.action.value,
        batch_id,
        len(succeeded),
        len(failed),
    )
    return success_response(
        {
            "batchId": batch_id,
            "action": body.action.value,
            "totalRequests": len(body.workspace_ids),
            "succeeded": succeeded,
            "failed": failed,
        },
        status_code=202,
    )


@api_handler("fetch AI usage data")
async def list_ai_usage(request: Request) -> Response:
    ctx = _context(request)
    query = _parse_query(AIUsageQuery, request)
    await _simulate_latency(ctx)

    snapshot = await asyncio.to_thread(ctx.provider.list_ai_usage)
    matching = filter_ai_usage(
        snapshot.items,
        provider=query.provider,
        user_id=query.user_id,
        start=_as_utc(query.start_date),
        end=_as_utc(query.end_date),
    )
    matching.sort(key=lambda log: log.timestamp, reverse=True)
    return success_response(
        {
            "logs": [log.to_json_dict() for log in matching[: query.limit]],
            "summary": summarize_ai_usage(matching, utc_now()),
            "total": len(matching),
            "limit": query.limit,
        },
        metadata=_source_metadata(snapshot.source),
    )


@api_handler("log AI usage")
async def create_ai_usage(request: Request) -> Response:
    ctx = _context(request)
    body = await _parse_body(CreateAIUsageRequest, request)
    log = AIUsageLog(id=new_record_id("log"), timestamp=utc_now(), **body.model_dump())
    saved = await asyncio.to_thread(ctx.provider.save_ai_usage, log)
    return success_response(saved.to_json_dict(), message="AI usage logged successfully")


@api_handler("check AWS connections")
async def connection_status(request: Request) -> Response:
    ctx = _context(request)
    return success_response(await check_connections(ctx.aws_clients))
