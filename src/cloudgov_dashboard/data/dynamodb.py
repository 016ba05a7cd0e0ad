"""DynamoDB-backed data provider with in-memory fallback."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ValidationError

from cloudgov_dashboard.config import AWSSettings
from cloudgov_dashboard.data.memory import InMemoryDataProvider, sort_findings
from cloudgov_dashboard.data.provider import (
    SOURCE_DYNAMODB,
    FindingNotFoundError,
    Snapshot,
    check_transition,
)
from cloudgov_dashboard.domain.models import (
    AIUsageLog,
    AWSResource,
    FindingStatus,
    IAMPolicy,
    IAMRole,
    IAMUser,
    SecurityFinding,
    WorkSpace,
)
from cloudgov_dashboard.utils.serialization import to_dynamodb_item

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_AWS_ERRORS = (BotoCoreError, ClientError)


def _scan_all(table: Any) -> list[dict[str, Any]]:
    response = table.scan()
    items = list(response.get("Items", []))
    while "LastEvaluatedKey" in response:
        response = table.scan(ExclusiveStartKey=response["LastEvaluatedKey"])
        items.extend(response.get("Items", []))
    return items


def _parse_items(
    model: type[ModelT],
    items: list[dict[str, Any]],
    table_name: str,
) -> list[ModelT]:
    parsed: list[ModelT] = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s item %s: %d validation error(s)",
                table_name,
                item.get("id", "<no id>"),
                exc.error_count(),
            )
    return parsed


def _role_item(role: IAMRole) -> dict[str, Any]:
    return to_dynamodb_item({"id": role.arn, **role.to_json_dict()})


class DynamoDBDataProvider:
    """Reads and writes dashboard records in DynamoDB tables.

    Empty tables are populated from the fallback store on first read, and any
    AWS error degrades to the fallback so the dashboard keeps serving data.
    Roles are keyed by ``id`` = ARN, every other table by the record ``id``.
    """

    def __init__(
        self,
        settings: AWSSettings,
        fallback: InMemoryDataProvider,
        dynamodb: Any | None = None,
    ) -> None:
        self._fallback = fallback
        self._dynamodb = dynamodb or boto3.resource(
            "dynamodb",
            region_name=settings.region,
            config=Config(retries={"max_attempts": 2, "mode": "standard"}),
        )
        self._findings = self._dynamodb.Table(settings.security_table)
        self._resources = self._dynamodb.Table(settings.resources_table)
        self._roles = self._dynamodb.Table(settings.iam_roles_table)
        self._users = self._dynamodb.Table(settings.iam_users_table)
        self._workspaces = self._dynamodb.Table(settings.workspaces_table)
        self._ai_usage = self._dynamodb.Table(settings.ai_usage_table)

    def _read(
        self,
        table: Any,
        model: type[ModelT],
        fallback: Callable[[], Snapshot[ModelT]],
        to_item: Callable[[ModelT], dict[str, Any]],
    ) -> Snapshot[ModelT]:
        try:
            items = _scan_all(table)
            if items:
                return Snapshot(_parse_items(model, items, table.name), SOURCE_DYNAMODB)
            seed = fallback()
            logger.info("Table %s is empty, seeding %d items", table.name, len(seed.items))
            with table.batch_writer() as batch:
                for record in seed.items:
                    batch.put_item(Item=to_item(record))
            return seed
        except _AWS_ERRORS as exc:
            logger.warning("DynamoDB read from %s failed, using mock data: %s", table.name, exc)
            return fallback()

    def _write(self, table: Any, item: dict[str, Any], save_fallback: Callable[[], Any]) -> None:
        try:
            table.put_item(Item=item)
        except _AWS_ERRORS as exc:
            logger.warning(
                "DynamoDB write to %s failed, keeping record in memory: %s", table.name, exc
            )
            save_fallback()

    def list_findings(self) -> Snapshot[SecurityFinding]:
        snapshot = self._read(
            self._findings,
            SecurityFinding,
            self._fallback.list_findings,
            lambda f: to_dynamodb_item(f.to_json_dict()),
        )
        return Snapshot(sort_findings(snapshot.items), snapshot.source)

    def _get(self, table: Any, model: type[ModelT], key: str) -> ModelT | None:
        item = table.get_item(Key={"id": key}).get("Item")
        if item is None:
            return None
        return model.model_validate(item)

    def get_finding(self, finding_id: str) -> SecurityFinding | None:
        try:
            return self._get(self._findings, SecurityFinding, finding_id)
        except _AWS_ERRORS as exc:
            logger.warning(
                "DynamoDB read from %s failed, using mock data: %s", self._findings.name, exc
            )
            return self._fallback.get_finding(finding_id)

    def set_finding_status(self, finding_id: str, status: FindingStatus) -> SecurityFinding:
        try:
            finding = self._get(self._findings, SecurityFinding, finding_id)
        except _AWS_ERRORS as exc:
            logger.warning(
                "DynamoDB read from %s failed, updating mock data: %s", self._findings.name, exc
            )
            return self._fallback.set_finding_status(finding_id, status)
        if finding is None:
            raise FindingNotFoundError(finding_id)
        check_transition(finding, status)
        updated = finding.model_copy(update={"status": status})
        self._write(
            self._findings,
            to_dynamodb_item(updated.to_json_dict()),
            lambda: self._fallback.set_finding_status(finding_id, status),
        )
        return updated

    def list_resources(self) -> Snapshot[AWSResource]:
        return self._read(
            self._resources,
            AWSResource,
            self._fallback.list_resources,
            lambda r: to_dynamodb_item(r.to_json_dict()),
        )

    def save_resource(self, resource: AWSResource) -> AWSResource:
        self._write(
            self._resources,
            to_dynamodb_item(resource.to_json_dict()),
            lambda: self._fallback.save_resource(resource),
        )
        return resource

    def list_policies(self) -> list[IAMPolicy]:
        return self._fallback.list_policies()

    def list_roles(self) -> Snapshot[IAMRole]:
        return self._read(self._roles, IAMRole, self._fallback.list_roles, _role_item)

    def save_role(self, role: IAMRole) -> IAMRole:
        self._write(self._roles, _role_item(role), lambda: self._fallback.save_role(role))
        return role

    def list_users(self) -> Snapshot[IAMUser]:
        return self._read(
            self._users,
            IAMUser,
            self._fallback.list_users,
            lambda u: to_dynamodb_item(u.to_json_dict()),
        )

    def save_user(self, user: IAMUser) -> IAMUser:
        self._write(
            self._users,
            to_dynamodb_item(user.to_json_dict()),
            lambda: self._fallback.save_user(user),
        )
        return user

    def list_workspaces(self) -> Snapshot[WorkSpace]:
        return self._read(
            self._workspaces,
            WorkSpace,
            self._fallback.list_workspaces,
            lambda w: to_dynamodb_item(w.to_json_dict()),
        )

    def get_workspace(self, workspace_id: str) -> WorkSpace | None:
        try:
            return self._get(self._workspaces, WorkSpace, workspace_id)
        except _AWS_ERRORS as exc:
            logger.warning(
                "DynamoDB read from %s failed, using mock data: %s", self._workspaces.name, exc
            )
            return self._fallback.get_workspace(workspace_id)

    def save_workspace(self, workspace: WorkSpace) -> WorkSpace:
        self._write(
            self._workspaces,
            to_dynamodb_item(workspace.to_json_dict()),
            lambda: self._fallback.save_workspace(workspace),
        )
        return workspace

    def list_ai_usage(self) -> Snapshot[AIUsageLog]:
        return self._read(
            self._ai_usage,
            AIUsageLog,
            self._fallback.list_ai_usage,
            lambda log: to_dynamodb_item(log.to_json_dict()),
        )

    def save_ai_usage(self, log: AIUsageLog) -> AIUsageLog:
        self._write(
            self._ai_usage,
            to_dynamodb_item(log.to_json_dict()),
            lambda: self._fallback.save_ai_usage(log),
        )
        return log
