"""Live reachability checks against the AWS services the dashboard reports on."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]

INVALID_CREDENTIALS = "Invalid credentials"
CONNECTION_FAILED = "Connection failed"
CHECK_FAILED = "Check failed"
MOCK_MODE = "AWS disabled (mock mode)"
NO_RDS_INSTANCES = "No RDS instances (cost optimization)"

_CREDENTIAL_ERRORS = (NoCredentialsError, PartialCredentialsError)
_CREDENTIAL_ERROR_CODES = frozenset(
    {"UnrecognizedClientException", "InvalidClientTokenId", "AuthFailure", "AccessDenied"}
)


class AWSClientFactory:
    """Builds one boto3 client per service and reuses it across requests."""

    def __init__(self, region: str, timeout_seconds: float = 5.0) -> None:
        self._region = region
        self._config = Config(
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
            retries={"max_attempts": 1, "mode": "standard"},
        )
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def __call__(self, service: str) -> Any:
        with self._lock:
            client = self._clients.get(service)
            if client is None:
                client = boto3.client(service, region_name=self._region, config=self._config)
                self._clients[service] = client
            return client


@dataclass(frozen=True)
class ServiceCheck:
    name: str
    service: str
    count: Callable[[Any], int]
    # Message for non-credential failures.
    failure: str = CONNECTION_FAILED


def _count_ec2(client: Any) -> int:
    response = client.describe_instances(MaxResults=5)
    return sum(len(r.get("Instances", [])) for r in response.get("Reservations", []))


def _count_s3(client: Any) -> int:
    return len(client.list_buckets().get("Buckets", []))


def _count_lambda(client: Any) -> int:
    return len(client.list_functions(MaxItems=10).get("Functions", []))


def _count_dynamodb(client: Any) -> int:
    return len(client.list_tables(Limit=10).get("TableNames", []))


def _count_rds(client: Any) -> int:
    # DescribeDBInstances rejects MaxRecords below 20.
    return len(client.describe_db_instances(MaxRecords=20).get("DBInstances", []))


SERVICE_CHECKS: tuple[ServiceCheck, ...] = (
    ServiceCheck("Amazon EC2", "ec2", _count_ec2),
    ServiceCheck("Amazon S3", "s3", _count_s3),
    ServiceCheck("AWS Lambda", "lambda", _count_lambda),
    ServiceCheck("Amazon DynamoDB", "dynamodb", _count_dynamodb),
    ServiceCheck("Amazon RDS", "rds", _count_rds, failure=NO_RDS_INSTANCES),
)


def _is_credential_error(exc: Exception) -> bool:
    if isinstance(exc, _CREDENTIAL_ERRORS):
        return True
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code") in _CREDENTIAL_ERROR_CODES
    return False


def run_check(check: ServiceCheck, clients: ClientFactory) -> dict[str, Any]:
    started = time.perf_counter()
    try:
        count = check.count(clients(check.service))
    except (BotoCoreError, ClientError) as exc:
        logger.warning("%s check failed: %s", check.name, exc)
        return {
            "name": check.name,
            "connected": False,
            "hasData": False,
            "error": INVALID_CREDENTIALS if _is_credential_error(exc) else check.failure,
            "latency": round((time.perf_counter() - started) * 1000),
        }
    return {
        "name": check.name,
        "connected": True,
        "hasData": count > 0,
        "latency": round((time.perf_counter() - started) * 1000),
        "resourceCount": count,
    }


def summarize_connections(services: list[dict[str, Any]]) -> dict[str, Any]:
    total = len(services)
    latency = sum(s.get("latency") or 0 for s in services)
    return {
        "totalServices": total,
        "connectedServices": sum(1 for s in services if s["connected"]),
        "servicesWithData": sum(1 for s in services if s["hasData"]),
        "averageLatency": round(latency / total) if total else 0,
        "totalResources": sum(s.get("resourceCount", 0) for s in services),
    }


async def check_connections(
    clients: ClientFactory | None,
    checks: tuple[ServiceCheck, ...] = SERVICE_CHECKS,
) -> dict[str, Any]:
    """Run every service check concurrently.

    With no client factory (mock mode) nothing is called and every service is
    reported as disconnected.  A check that fails with anything other than an
    AWS error is reported as ``Check failed`` instead of failing the batch.
    """
    if clients is None:
        services = [
            {"name": check.name, "connected": False, "hasData": False, "error": MOCK_MODE}
            for check in checks
        ]
    else:
        results = await asyncio.gather(
            *(asyncio.to_thread(run_check, check, clients) for check in checks),
            return_exceptions=True,
        )
        services = []
        for check, result in zip(checks, results):
            if isinstance(result, Exception):
                logger.error("%s check raised %r", check.name, result)
                result = {
                    "name": check.name,
                    "connected": False,
                    "hasData": False,
                    "error": CHECK_FAILED,
                }
            services.append(result)

    summary = summarize_connections(services)
    return {
        "services": services,
        "summary": summary,
        "mode": "live" if summary["servicesWithData"] else "demo",
    }
