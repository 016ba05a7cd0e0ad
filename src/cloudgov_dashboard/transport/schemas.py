"""Request query and body models for the HTTP API."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from cloudgov_dashboard.domain.models import (
    AccessLevel,
    ComputeType,
    CostGroupBy,
    CostRange,
    FindingStatus,
    ResourceStatus,
    ResourceType,
    RiskLevel,
    RunningMode,
    Severity,
    WorkSpaceAction,
    WorkSpaceState,
)

MAX_PAGE_SIZE = 1000
# Batch size accepted by the WorkSpaces Start/Stop/Reboot/Terminate APIs.
MAX_BULK_WORKSPACES = 25
BULK_ACTIONS = frozenset(
    {
        WorkSpaceAction.START,
        WorkSpaceAction.STOP,
        WorkSpaceAction.REBOOT,
        WorkSpaceAction.TERMINATE,
    }
)


def _all_to_none(v: Any) -> Any:
    if isinstance(v, str) and v.lower() == "all":
        return None
    return v


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _QueryModel(_RequestModel):
    """Query strings arrive as text; an empty value means the key was not given."""

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value not in ("", None)}
        return data


class CostsQuery(_QueryModel):
    range: CostRange = CostRange.THIRTY_DAYS
    group_by: CostGroupBy = CostGroupBy.DAY
    service: str | None = None


class ResourcesQuery(_QueryModel):
    resource_type: ResourceType | None = Field(default=None, alias="type")
    status: ResourceStatus | None = None
    region: str | None = None
    owner: str | None = None
    limit: int = Field(default=100, ge=0, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class SecurityQuery(_QueryModel):
    severity: Severity | None = None
    status: FindingStatus | None = None
    resource_type: str | None = None
    limit: int = Field(default=50, ge=0, le=MAX_PAGE_SIZE)


class RolesQuery(_QueryModel):
    risk_level: RiskLevel | None = None
    search: str | None = None
    limit: int = Field(default=100, ge=0, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class UsersQuery(_QueryModel):
    access_level: AccessLevel | None = None
    mfa_enabled: bool | None = None
    risk_level: RiskLevel | None = None
    search: str | None = None
    limit: int = Field(default=100, ge=0, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)

    @field_validator("access_level", mode="before")
    @classmethod
    def _all_means_any(cls, v: Any) -> Any:
        return _all_to_none(v)

    @field_validator("mfa_enabled", mode="before")
    @classmethod
    def _only_true_or_false(cls, v: Any) -> Any:
        # Anything other than "true"/"false" leaves MFA unfiltered.
        if isinstance(v, str):
            return {"true": True, "false": False}.get(v.strip().lower())
        return v


class CreateResourceRequest(_RequestModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: ResourceType
    status: ResourceStatus
    region: str = Field(min_length=1)
    monthly_cost: float = Field(ge=0)
    owner: str = Field(min_length=1)
    tags: dict[str, str] = Field(default_factory=dict)
    metadata: dict[str, Any] | None = None


class CreateRoleRequest(_RequestModel):
    name: str = Field(min_length=1, max_length=64)
    description: str = Field(min_length=1)
    policies: list[str]
    trusted_entities: list[str]
    permissions_boundary: str | None = None


class CreateUserRequest(_RequestModel):
    username: str = Field(min_length=1, max_length=64)
    email: str = Field(min_length=3)
    roles: list[str]
    access_level: AccessLevel
    mfa_enabled: bool = False


class WorkspacesQuery(_QueryModel):
    state: WorkSpaceState | None = None
    running_mode: RunningMode | None = None
    search: str | None = None
    limit: int = Field(default=100, ge=0, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)

    @field_validator("state", "running_mode", mode="before")
    @classmethod
    def _all_means_any(cls, v: Any) -> Any:
        return _all_to_none(v)


class CreateWorkspaceRequest(_RequestModel):
    name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    bundle_id: str = Field(min_length=1)
    compute_type: ComputeType
    directory_id: str = Field(min_length=1)
    running_mode: RunningMode = RunningMode.AUTO_STOP


class WorkspaceActionRequest(_RequestModel):
    workspace_id: str = Field(min_length=1)
    action: WorkSpaceAction


class ModifyWorkspaceRequest(_RequestModel):
    running_mode: RunningMode | None = None
    # AutoStop timeouts are whole hours.
    running_mode_auto_stop_timeout_in_minutes: int | None = Field(
        default=None, ge=60, multiple_of=60
    )

    @model_validator(mode="after")
    def _require_a_change(self) -> ModifyWorkspaceRequest:
        if self.running_mode is None and self.running_mode_auto_stop_timeout_in_minutes is None:
            raise ValueError("runningMode or runningModeAutoStopTimeoutInMinutes is required")
        return self


class BulkWorkspaceRequest(_RequestModel):
    action: WorkSpaceAction
    workspace_ids: list[str] = Field(min_length=1, max_length=MAX_BULK_WORKSPACES)

    @field_validator("action")
    @classmethod
    def _supported_in_bulk(cls, v: WorkSpaceAction) -> WorkSpaceAction:
        if v not in BULK_ACTIONS:
            raise ValueError(f"Unsupported bulk action: {v.value}")
        return v


class AIUsageQuery(_QueryModel):
    provider: str | None = None
    user_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = Field(default=50, ge=0, le=MAX_PAGE_SIZE)

    @field_validator("provider", mode="before")
    @classmethod
    def _all_means_any(cls, v: Any) -> Any:
        return _all_to_none(v)


class CreateAIUsageRequest(_RequestModel):
    user_id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    endpoint: str = Field(min_length=1)
    request_type: str = Field(min_length=1)
    tokens_used: int = Field(ge=0)
    cost: float = Field(ge=0)
    response_time: int = Field(ge=0)
    success: bool
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
