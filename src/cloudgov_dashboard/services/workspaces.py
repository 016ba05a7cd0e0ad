"""WorkSpaces pricing, fleet summary, recommendations and lifecycle actions."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from cloudgov_dashboard.data.provider import DataProvider
from cloudgov_dashboard.domain.models import (
    ComputeType,
    RunningMode,
    WorkSpace,
    WorkSpaceAction,
    WorkSpaceState,
)

WORKSPACE_MONTHLY_COST: dict[ComputeType, float] = {
    ComputeType.VALUE: 22,
    ComputeType.STANDARD: 25,
    ComputeType.PERFORMANCE: 35,
    ComputeType.POWER: 52,
    ComputeType.POWERPRO: 68,
}
ALWAYS_ON_MULTIPLIER = 1.5
AUTO_STOP_SAVINGS_RATE = 0.3
INACTIVE_WINDOW = timedelta(days=30)

# action -> (states it may be applied in, resulting state)
ACTION_TRANSITIONS: dict[WorkSpaceAction, tuple[frozenset[WorkSpaceState], WorkSpaceState]] = {
    WorkSpaceAction.START: (frozenset({WorkSpaceState.STOPPED}), WorkSpaceState.AVAILABLE),
    WorkSpaceAction.STOP: (frozenset({WorkSpaceState.AVAILABLE}), WorkSpaceState.STOPPED),
    WorkSpaceAction.REBOOT: (frozenset({WorkSpaceState.AVAILABLE}), WorkSpaceState.AVAILABLE),
    WorkSpaceAction.REBUILD: (
        frozenset({WorkSpaceState.AVAILABLE, WorkSpaceState.STOPPED, WorkSpaceState.ERROR}),
        WorkSpaceState.AVAILABLE,
    ),
    WorkSpaceAction.TERMINATE: (
        frozenset(
            {
                WorkSpaceState.PENDING,
                WorkSpaceState.AVAILABLE,
                WorkSpaceState.STOPPED,
                WorkSpaceState.ERROR,
            }
        ),
        WorkSpaceState.TERMINATED,
    ),
}


class WorkspaceNotFoundError(LookupError):
    pass


class InvalidWorkspaceActionError(ValueError):
    """Raised when an operation is not allowed in the WorkSpace's current state."""

    def __init__(self, workspace: WorkSpace, action: str) -> None:
        super().__init__(
            f"Cannot {action} WorkSpace {workspace.id} in state {workspace.state.value}"
        )
        self.workspace_id = workspace.id
        self.action = action
        self.state = workspace.state


def monthly_cost_for(compute_type: ComputeType, running_mode: RunningMode) -> float:
    cost = WORKSPACE_MONTHLY_COST[compute_type]
    if running_mode is RunningMode.ALWAYS_ON:
        return cost * ALWAYS_ON_MULTIPLIER
    return cost


def apply_workspace_action(workspace: WorkSpace, action: WorkSpaceAction) -> WorkSpace:
    """Return ``workspace`` as it looks once ``action`` has completed."""
    allowed, target = ACTION_TRANSITIONS[action]
    if workspace.state not in allowed:
        raise InvalidWorkspaceActionError(workspace, action.value)
    update: dict[str, Any] = {"state": target}
    if target is WorkSpaceState.TERMINATED:
        update.update(ip_address=None, monthly_cost=0)
    return workspace.model_copy(update=update)


def summarize_workspaces(workspaces: Sequence[WorkSpace]) -> dict[str, Any]:
    total_cost = sum(w.monthly_cost for w in workspaces)
    return {
        "totalWorkSpaces": len(workspaces),
        "available": sum(1 for w in workspaces if w.state is WorkSpaceState.AVAILABLE),
        "stopped": sum(1 for w in workspaces if w.state is WorkSpaceState.STOPPED),
        "error": sum(1 for w in workspaces if w.state is WorkSpaceState.ERROR),
        "alwaysOn": sum(1 for w in workspaces if w.running_mode is RunningMode.ALWAYS_ON),
        "autoStop": sum(1 for w in workspaces if w.running_mode is RunningMode.AUTO_STOP),
        "totalMonthlyCost": total_cost,
        "avgMonthlyCost": total_cost / len(workspaces) if workspaces else 0,
        "byComputeType": {
            compute.value: sum(1 for w in workspaces if w.compute_type is compute)
            for compute in ComputeType
        },
    }


def recommend_for_workspaces(
    workspaces: Sequence[WorkSpace],
    now: datetime,
) -> list[dict[str, Any]]:
    cutoff = now - INACTIVE_WINDOW
    recommendations: list[dict[str, Any]] = []

    always_on = [
        w
        for w in workspaces
        if w.running_mode is RunningMode.ALWAYS_ON and w.state is WorkSpaceState.AVAILABLE
    ]
    if always_on:
        recommendations.append(
            {
                "type": "cost",
                "severity": "medium",
                "title": "Switch to AUTO_STOP for unused WorkSpaces",
                "description": f"{len(always_on)} WorkSpace(s) running in ALWAYS_ON mode",
                "potentialSavings": round(
                    sum(w.monthly_cost * AUTO_STOP_SAVINGS_RATE for w in always_on), 2
                ),
                "affectedWorkSpaces": [w.name for w in always_on],
            }
        )

    inactive = [
        w
        for w in workspaces
        if w.state is not WorkSpaceState.TERMINATED
        and w.last_connection is not None
        and w.last_connection < cutoff
    ]
    if inactive:
        recommendations.append(
            {
                "type": "cost",
                "severity": "high",
                "title": "Terminate inactive WorkSpaces",
                "description": f"{len(inactive)} WorkSpace(s) not used in 30+ days",
                "potentialSavings": round(sum(w.monthly_cost for w in inactive), 2),
                "affectedWorkSpaces": [w.name for w in inactive],
            }
        )

    errored = [w for w in workspaces if w.state is WorkSpaceState.ERROR]
    if errored:
        recommendations.append(
            {
                "type": "health",
                "severity": "high",
                "title": "Fix or terminate error WorkSpaces",
                "description": f"{len(errored)} WorkSpace(s) in ERROR state",
                "affectedWorkSpaces": [w.name for w in errored],
            }
        )

    return recommendations


def _require_workspace(provider: DataProvider, workspace_id: str) -> WorkSpace:
    workspace = provider.get_workspace(workspace_id)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_id)
    return workspace


def perform_workspace_action(
    provider: DataProvider,
    workspace_id: str,
    action: WorkSpaceAction,
) -> WorkSpace:
    workspace = _require_workspace(provider, workspace_id)
    return provider.save_workspace(apply_workspace_action(workspace, action))


def modify_workspace(
    provider: DataProvider,
    workspace_id: str,
    running_mode: RunningMode | None = None,
    auto_stop_timeout: int | None = None,
) -> WorkSpace:
    """Change running mode properties; switching mode re-prices the WorkSpace."""
    workspace = _require_workspace(provider, workspace_id)
    if workspace.state is WorkSpaceState.TERMINATED:
        raise InvalidWorkspaceActionError(workspace, "modify")

    mode = running_mode or workspace.running_mode
    update: dict[str, Any] = {"running_mode": mode}
    if mode is RunningMode.ALWAYS_ON:
        update["running_mode_auto_stop_timeout_in_minutes"] = None
    elif auto_stop_timeout is not None:
        update["running_mode_auto_stop_timeout_in_minutes"] = auto_stop_timeout
    if mode is not workspace.running_mode:
        update["monthly_cost"] = monthly_cost_for(workspace.compute_type, mode)
    return provider.save_workspace(workspace.model_copy(update=update))


def bulk_workspace_action(
    provider: DataProvider,
    workspace_ids: Sequence[str],
    action: WorkSpaceAction,
) -> tuple[list[str], list[dict[str, str]]]:
    """Apply ``action`` to each WorkSpace; one failure does not stop the rest."""
    succeeded: list[str] = []
    failed: list[dict[str, str]] = []
    for workspace_id in workspace_ids:
        try:
            perform_workspace_action(provider, workspace_id, action)
        except WorkspaceNotFoundError:
            failed.append({"workspaceId": workspace_id, "error": "WorkSpace not found"})
        except InvalidWorkspaceActionError as exc:
            failed.append({"workspaceId": workspace_id, "error": str(exc)})
        else:
            succeeded.append(workspace_id)
    return succeeded, failed
