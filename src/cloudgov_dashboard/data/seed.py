"""Seed catalog models and loader for seed.yaml."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from cloudgov_dashboard.domain.models import (
    AccessLevel,
    AIUsageLog,
    IAMPolicy,
    IAMRole,
    IAMUser,
    ResourceType,
    Severity,
    WorkSpace,
)

DEFAULT_SEED_PATH = Path(__file__).with_name("seed.yaml")


def _ensure_list(v: Any) -> list:
    """Convert None to empty list, pass through lists."""
    if v is None:
        return []
    return v


class RoleSeed(BaseModel):
    arn: str
    name: str
    description: str
    created_at: datetime
    last_used: datetime | None = None
    policies: list[str] = Field(default_factory=list)
    is_overly_permissive: bool = False
    trusted_entities: list[str] = Field(default_factory=list)
    permissions_boundary: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)
    risk_score: int = Field(ge=0)

    @field_validator("policies", "trusted_entities", mode="before")
    @classmethod
    def _validate_lists(cls, v: Any) -> list:
        return _ensure_list(v)


class UserSeed(BaseModel):
    id: str
    username: str
    arn: str | None = None
    email: str
    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    mfa_enabled: bool = False
    last_activity: datetime
    access_level: AccessLevel
    risk_score: int = Field(ge=0, le=100)


class FindingTemplate(BaseModel):
    title: str
    description: str
    severity: Severity
    resource_type: ResourceType
    remediation: str


class InventorySeed(BaseModel):
    regions: list[str] = Field(default_factory=lambda: ["us-east-1"])
    owners: list[str] = Field(default_factory=lambda: ["platform-team"])
    environments: list[str] = Field(default_factory=lambda: ["Production"])
    name_prefixes: dict[ResourceType, str] = Field(default_factory=dict)
    monthly_cost: dict[ResourceType, tuple[float, float]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _require_pools(self) -> "InventorySeed":
        if not self.regions or not self.owners or not self.environments:
            raise ValueError("inventory regions, owners and environments must not be empty")
        return self


class SeedCatalog(BaseModel):
    version: int = Field(default=1)
    account_id: str = Field(default="123456789012")
    policies: list[IAMPolicy] = Field(default_factory=list)
    roles: list[RoleSeed] = Field(default_factory=list)
    users: list[UserSeed] = Field(default_factory=list)
    finding_templates: list[FindingTemplate] = Field(default_factory=list)
    inventory: InventorySeed = Field(default_factory=InventorySeed)
    workspaces: list[WorkSpace] = Field(default_factory=list)
    ai_usage_logs: list[AIUsageLog] = Field(default_factory=list)

    @field_validator(
        "policies",
        "roles",
        "users",
        "finding_templates",
        "workspaces",
        "ai_usage_logs",
        mode="before",
    )
    @classmethod
    def _validate_lists(cls, v: Any) -> list:
        return _ensure_list(v)

    @model_validator(mode="after")
    def _check_policy_references(self) -> "SeedCatalog":
        known = {policy.id for policy in self.policies}
        for role in self.roles:
            missing = [policy_id for policy_id in role.policies if policy_id not in known]
            if missing:
                raise ValueError(f"Role {role.name} references unknown policies: {missing}")
        return self

    @classmethod
    def from_yaml(cls, data: dict[str, object]) -> "SeedCatalog":
        return cls.model_validate(data)

    def policy_index(self) -> dict[str, IAMPolicy]:
        return {policy.id: policy for policy in self.policies}

    def build_roles(self) -> list[IAMRole]:
        index = self.policy_index()
        return [
            IAMRole(
                arn=role.arn,
                name=role.name,
                description=role.description,
                created_at=role.created_at,
                last_used=role.last_used,
                policies=[index[policy_id] for policy_id in role.policies],
                is_overly_permissive=role.is_overly_permissive,
                trusted_entities=role.trusted_entities,
                permissions_boundary=role.permissions_boundary,
                tags=role.tags,
                risk_score=role.risk_score,
            )
            for role in self.roles
        ]

    def build_users(self) -> list[IAMUser]:
        return [
            IAMUser(
                id=user.id,
                username=user.username,
                arn=user.arn or self.user_arn(user.username),
                email=user.email,
                roles=user.roles,
                permissions=user.permissions,
                mfa_enabled=user.mfa_enabled,
                last_activity=user.last_activity,
                access_level=user.access_level,
                risk_score=user.risk_score,
            )
            for user in self.users
        ]

    def user_arn(self, username: str) -> str:
        return f"arn:aws:iam::{self.account_id}:user/{username}"

    def role_arn(self, name: str) -> str:
        return f"arn:aws:iam::{self.account_id}:role/{name}"


def load_seed_catalog(path: str | Path | None = None) -> SeedCatalog:
    seed_path = Path(path) if path else DEFAULT_SEED_PATH
    if not seed_path.exists():
        raise FileNotFoundError(f"Seed catalog not found: {seed_path}")
    with seed_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return SeedCatalog.from_yaml(data)

