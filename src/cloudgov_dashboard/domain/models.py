"""Domain records for the governance dashboard."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FindingStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class ResourceType(str, Enum):
    EC2 = "EC2"
    S3 = "S3"
    LAMBDA = "Lambda"
    DYNAMODB = "DynamoDB"
    RDS = "RDS"
    ECS = "ECS"
    EKS = "EKS"
    CLOUDFRONT = "CloudFront"
    API_GATEWAY = "API Gateway"
    WORKSPACES = "WorkSpaces"


class ResourceStatus(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    TERMINATED = "terminated"
    PENDING = "pending"
    ERROR = "error"


class AccessLevel(str, Enum):
    ADMIN = "admin"
    POWER_USER = "power-user"
    READ_ONLY = "read-only"


class PolicyType(str, Enum):
    AWS_MANAGED = "AWS Managed"
    CUSTOMER_MANAGED = "Customer Managed"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CostRange(str, Enum):
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"
    TWELVE_MONTHS = "12m"


class CostGroupBy(str, Enum):
    DAY = "day"
    SERVICE = "service"
    REGION = "region"
    PROJECT = "project"


class WorkSpaceState(str, Enum):
    PENDING = "PENDING"
    AVAILABLE = "AVAILABLE"
    STOPPED = "STOPPED"
    ERROR = "ERROR"
    TERMINATED = "TERMINATED"


class RunningMode(str, Enum):
    ALWAYS_ON = "ALWAYS_ON"
    AUTO_STOP = "AUTO_STOP"


class ComputeType(str, Enum):
    VALUE = "VALUE"
    STANDARD = "STANDARD"
    PERFORMANCE = "PERFORMANCE"
    POWER = "POWER"
    POWERPRO = "POWERPRO"


class WorkSpaceAction(str, Enum):
    START = "start"
    STOP = "stop"
    REBOOT = "reboot"
    REBUILD = "rebuild"
    TERMINATE = "terminate"


class CamelModel(BaseModel):
    """Base for records exchanged with the dashboard as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SecurityFinding(CamelModel):
    id: str
    title: str
    description: str
    severity: Severity
    resource_id: str
    resource_type: ResourceType
    detected_at: datetime
    status: FindingStatus
    remediation: str


class SeverityBreakdown(CamelModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class ComplianceSummary(CamelModel):
    score: int = Field(ge=0, le=100)
    grade: str
    breakdown: SeverityBreakdown


class PolicyStatement(BaseModel):
    model_config = ConfigDict(extra="allow")

    Effect: str
    Action: str | list[str]
    Resource: str | list[str]


class PolicyDocument(BaseModel):
    Version: str = "2012-10-17"
    Statement: list[PolicyStatement] = Field(default_factory=list)


class IAMPolicy(CamelModel):
    id: str
    name: str
    type: PolicyType
    document: PolicyDocument
    attached_roles_count: int = Field(default=0, ge=0)
    is_high_risk: bool = False


class IAMRole(CamelModel):
    arn: str
    name: str
    description: str
    created_at: datetime
    last_used: datetime | None = None
    policies: list[IAMPolicy] = Field(default_factory=list)
    inline_policies: list[dict[str, Any]] = Field(default_factory=list)
    is_overly_permissive: bool = False
    trusted_entities: list[str] = Field(default_factory=list)
    permissions_boundary: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)
    # Not clamped to 100: see scoring.iam_risk.score_role.
    risk_score: int = Field(ge=0)


class IAMUser(CamelModel):
    id: str
    username: str
    arn: str
    email: str
    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    mfa_enabled: bool = False
    last_activity: datetime
    access_level: AccessLevel
    risk_score: int = Field(ge=0, le=100)


class AWSResource(CamelModel):
    id: str
    name: str
    type: ResourceType
    status: ResourceStatus
    region: str
    monthly_cost: float = Field(ge=0)
    owner: str
    created_at: datetime
    last_accessed: datetime
    tags: dict[str, str] = Field(default_factory=dict)
    metadata: dict[str, Any] | None = None


class CostDataPoint(CamelModel):
    date: str
    cost: int


class CostSummary(CamelModel):
    current_month: int
    previous_month: int
    percentage_change: float
    projected: int
    history: list[CostDataPoint] = Field(default_factory=list)


class CostBreakdownItem(CamelModel):
    name: str
    cost: int


class CostReport(CamelModel):
    costs: list[CostDataPoint]
    summary: CostSummary


class WorkSpace(CamelModel):
    id: str
    name: str
    directory_id: str
    username: str
    bundle_id: str
    bundle_name: str
    state: WorkSpaceState
    running_mode: RunningMode
    running_mode_auto_stop_timeout_in_minutes: int | None = None
    ip_address: str | None = None
    subnet_id: str
    monthly_cost: float = Field(ge=0)
    last_connection: datetime | None = None
    compute_type: ComputeType
    root_volume_size: int = Field(default=80, ge=0)
    user_volume_size: int = Field(default=50, ge=0)


class AIUsageLog(CamelModel):
    id: str
    timestamp: datetime
    user_id: str
    username: str
    provider: str
    model: str
    endpoint: str
    request_type: str
    tokens_used: int = Field(ge=0)
    cost: float = Field(ge=0)
    # Milliseconds.
    response_time: int = Field(ge=0)
    success: bool
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
