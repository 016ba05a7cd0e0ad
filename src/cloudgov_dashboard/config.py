"""Configuration management for the CloudGov Dashboard API."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class ServerSettings(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1024, le=65535)
    environment: str = Field(default="development")
    http_allowed_origins: tuple[str, ...] = Field(default=())
    http_enable_cors: bool = Field(default=False)
    http_trust_forwarded_headers: bool = Field(default=False)


class MockDataSettings(BaseModel):
    seed_path: str | None = Field(
        default=None,
        description="Seed catalog path; unset uses the catalog bundled with the package.",
    )
    random_seed: int | None = Field(
        default=None,
        description="Seed for generated findings/resources; unset means non-deterministic.",
    )
    latency_ms: int = Field(default=0, ge=0, le=10_000)
    finding_count: int = Field(default=20, ge=0, le=1000)
    resource_count: int = Field(default=40, ge=0, le=5000)
    cost_baseline: int = Field(default=1200, ge=1)


class AWSSettings(BaseModel):
    use_real_aws: bool = Field(default=False)
    region: str = Field(default="us-east-1")
    resources_table: str = Field(default="CloudGovResources")
    security_table: str = Field(default="CloudGovSecurityFindings")
    iam_roles_table: str = Field(default="CloudGovIAMRoles")
    iam_users_table: str = Field(default="CloudGovIAMUsers")
    workspaces_table: str = Field(default="CloudGovWorkSpaces")
    ai_usage_table: str = Field(default="CloudGovAIUsage")


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    mock: MockDataSettings = Field(default_factory=MockDataSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)


ENV_KEYS = {
    "host": "CLOUDGOV_HOST",
    "port": "CLOUDGOV_PORT",
    "environment": "CLOUDGOV_ENV",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "seed_path": "SEED_DATA_PATH",
    "mock_seed": "MOCK_SEED",
    "mock_latency_ms": "MOCK_LATENCY_MS",
    "mock_finding_count": "MOCK_FINDING_COUNT",
    "mock_resource_count": "MOCK_RESOURCE_COUNT",
    "cost_baseline": "COST_BASELINE",
    "use_real_aws": "USE_REAL_AWS",
    "aws_region": "AWS_DEFAULT_REGION",
    "resources_table": "DYNAMODB_RESOURCES_TABLE",
    "security_table": "DYNAMODB_SECURITY_TABLE",
    "iam_roles_table": "DYNAMODB_IAM_ROLES_TABLE",
    "iam_users_table": "DYNAMODB_IAM_USERS_TABLE",
    "workspaces_table": "DYNAMODB_WORKSPACES_TABLE",
    "ai_usage_table": "DYNAMODB_AI_USAGE_TABLE",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _split_csv_preserve_case(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_optional_int(key: str) -> int | None:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        _config_logger.warning("Invalid integer value for %s: %r, ignoring", key, value)
        return None


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])
    seed_path_env = os.getenv(ENV_KEYS["seed_path"])

    settings_data: dict[str, object] = {
        "server": {
            "host": os.getenv(ENV_KEYS["host"], ServerSettings().host),
            "port": _env_int(ENV_KEYS["port"], ServerSettings().port),
            "environment": os.getenv(ENV_KEYS["environment"], ServerSettings().environment),
            "http_allowed_origins": tuple(
                _split_csv_preserve_case(os.getenv("HTTP_ALLOWED_ORIGINS"))
            ),
            "http_enable_cors": _env_bool(
                "HTTP_ENABLE_CORS",
                ServerSettings().http_enable_cors,
            ),
            "http_trust_forwarded_headers": _env_bool(
                "HTTP_TRUST_FORWARDED_HEADERS",
                ServerSettings().http_trust_forwarded_headers,
            ),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "mock": {
            "seed_path": _resolve_path(seed_path_env) if seed_path_env else None,
            "random_seed": _env_optional_int(ENV_KEYS["mock_seed"]),
            "latency_ms": _env_int(ENV_KEYS["mock_latency_ms"], MockDataSettings().latency_ms),
            "finding_count": _env_int(
                ENV_KEYS["mock_finding_count"], MockDataSettings().finding_count
            ),
            "resource_count": _env_int(
                ENV_KEYS["mock_resource_count"], MockDataSettings().resource_count
            ),
            "cost_baseline": _env_int(ENV_KEYS["cost_baseline"], MockDataSettings().cost_baseline),
        },
        "aws": {
            "use_real_aws": _env_bool(ENV_KEYS["use_real_aws"], AWSSettings().use_real_aws),
            "region": os.getenv("AWS_REGION")
            or os.getenv(ENV_KEYS["aws_region"])
            or AWSSettings().region,
            "resources_table": os.getenv(
                ENV_KEYS["resources_table"], AWSSettings().resources_table
            ),
            "security_table": os.getenv(ENV_KEYS["security_table"], AWSSettings().security_table),
            "iam_roles_table": os.getenv(
                ENV_KEYS["iam_roles_table"], AWSSettings().iam_roles_table
            ),
            "iam_users_table": os.getenv(
                ENV_KEYS["iam_users_table"], AWSSettings().iam_users_table
            ),
            "workspaces_table": os.getenv(
                ENV_KEYS["workspaces_table"], AWSSettings().workspaces_table
            ),
            "ai_usage_table": os.getenv(ENV_KEYS["ai_usage_table"], AWSSettings().ai_usage_table),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    return settings
