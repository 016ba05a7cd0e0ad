from __future__ import annotations

import asyncio
import contextlib
import random
from datetime import datetime, timezone

import pytest

from cloudgov_dashboard import app as app_module
from cloudgov_dashboard import config
from cloudgov_dashboard.app import AppContext
from cloudgov_dashboard.config import Settings
from cloudgov_dashboard.costs.generator import CostSeriesGenerator
from cloudgov_dashboard.data.memory import InMemoryDataProvider
from cloudgov_dashboard.data.seed import SeedCatalog, load_seed_catalog
from cloudgov_dashboard.domain.models import (
    FindingStatus,
    ResourceType,
    SecurityFinding,
    Severity,
)

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

_EXTRA_ENV_KEYS = (
    "AWS_REGION",
    "HTTP_ENABLE_CORS",
    "HTTP_ALLOWED_ORIGINS",
    "HTTP_TRUST_FORWARDED_HEADERS",
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (*config.ENV_KEYS.values(), *_EXTRA_ENV_KEYS):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda **_: None)
    config._load_settings_cached.cache_clear()
    app_module.get_app_context.cache_clear()
    yield
    config._load_settings_cached.cache_clear()
    app_module.get_app_context.cache_clear()


@pytest.fixture(autouse=True)
def _close_default_event_loop() -> None:
    yield
    policy = asyncio.get_event_loop_policy()
    local = getattr(policy, "_local", None)
    loop = getattr(local, "_loop", None) if local is not None else None
    if loop is not None and not loop.is_running() and not loop.is_closed():
        with contextlib.suppress(Exception):
            loop.close()
    if loop is not None:
        with contextlib.suppress(Exception):
            policy.set_event_loop(None)


@pytest.fixture(scope="session")
def catalog() -> SeedCatalog:
    return load_seed_catalog()


@pytest.fixture
def memory_provider(catalog: SeedCatalog) -> InMemoryDataProvider:
    return InMemoryDataProvider(
        catalog,
        rng=random.Random(42),
        finding_count=20,
        resource_count=30,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def app_context(catalog: SeedCatalog, memory_provider: InMemoryDataProvider) -> AppContext:
    return AppContext(
        settings=Settings(),
        catalog=catalog,
        provider=memory_provider,
        cost_generator=CostSeriesGenerator(rng=random.Random(7), clock=lambda: FIXED_NOW),
    )


def make_finding(
    finding_id: str = "finding-1",
    *,
    severity: Severity = Severity.HIGH,
    status: FindingStatus = FindingStatus.OPEN,
    resource_type: ResourceType = ResourceType.EC2,
    detected_at: datetime = FIXED_NOW,
) -> SecurityFinding:
    return SecurityFinding(
        id=finding_id,
        title=f"Finding {finding_id}",
        description="Synthetic finding",
        severity=severity,
        resource_id=f"ec2-{finding_id}",
        resource_type=resource_type,
        detected_at=detected_at,
        status=status,
        remediation="Fix it.",
    )
