"""Application context assembly."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from functools import lru_cache

from cloudgov_dashboard.config import Settings, load_settings
from cloudgov_dashboard.costs.generator import CostSeriesGenerator
from cloudgov_dashboard.data.dynamodb import DynamoDBDataProvider
from cloudgov_dashboard.data.memory import InMemoryDataProvider
from cloudgov_dashboard.data.provider import DataProvider
from cloudgov_dashboard.data.seed import SeedCatalog, load_seed_catalog
from cloudgov_dashboard.services.connection_status import AWSClientFactory, ClientFactory

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application-wide dependency container.

    Handlers receive this through ``app.state.context`` instead of reaching
    for module-level singletons, so tests can swap any piece.
    """

    settings: Settings
    catalog: SeedCatalog
    provider: DataProvider
    cost_generator: CostSeriesGenerator
    # None in mock mode; the connection check then reports every service offline.
    aws_clients: ClientFactory | None = None


def build_app_context(settings: Settings) -> AppContext:
    """Wire the catalog, data provider and cost generator for ``settings``."""
    catalog = load_seed_catalog(settings.mock.seed_path)
    rng = random.Random(settings.mock.random_seed)

    memory = InMemoryDataProvider(
        catalog,
        rng=rng,
        finding_count=settings.mock.finding_count,
        resource_count=settings.mock.resource_count,
    )
    provider: DataProvider = memory
    aws_clients: ClientFactory | None = None
    if settings.aws.use_real_aws:
        logger.info("Using DynamoDB tables in %s", settings.aws.region)
        provider = DynamoDBDataProvider(settings.aws, fallback=memory)
        aws_clients = AWSClientFactory(settings.aws.region)

    return AppContext(
        settings=settings,
        catalog=catalog,
        provider=provider,
        cost_generator=CostSeriesGenerator(rng=rng, baseline=settings.mock.cost_baseline),
        aws_clients=aws_clients,
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the process-wide application context."""
    return build_app_context(load_settings())
