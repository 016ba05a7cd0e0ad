"""Starlette HTTP server assembly for the dashboard API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import Route

from cloudgov_dashboard.app import AppContext, get_app_context
from cloudgov_dashboard.middleware.request_log import RequestLogMiddleware
from cloudgov_dashboard.transport import handlers

logger = logging.getLogger(__name__)


def _build_routes() -> list[Route]:
    return [
        Route("/api/health", endpoint=handlers.health, methods=["GET"]),
        Route("/api/costs", endpoint=handlers.get_costs, methods=["GET"]),
        Route("/api/costs", endpoint=handlers.create_cost_alert, methods=["POST"]),
        Route("/api/resources", endpoint=handlers.list_resources, methods=["GET"]),
        Route("/api/resources", endpoint=handlers.create_resource, methods=["POST"]),
        Route("/api/resources/costs", endpoint=handlers.get_costs, methods=["GET"]),
        Route("/api/resources/costs", endpoint=handlers.create_cost_alert, methods=["POST"]),
        Route("/api/security", endpoint=handlers.list_findings, methods=["GET"]),
        Route("/api/security/compliance", endpoint=handlers.get_compliance, methods=["GET"]),
        Route(
            "/api/security/findings/{finding_id}/resolve",
            endpoint=handlers.resolve_finding,
            methods=["POST"],
        ),
        Route(
            "/api/security/findings/{finding_id}/dismiss",
            endpoint=handlers.dismiss_finding,
            methods=["POST"],
        ),
        Route("/api/iam/roles", endpoint=handlers.list_roles, methods=["GET"]),
        Route("/api/iam/roles", endpoint=handlers.create_role, methods=["POST"]),
        Route("/api/iam/users", endpoint=handlers.list_users, methods=["GET"]),
        Route("/api/iam/users", endpoint=handlers.create_user, methods=["POST"]),
        Route("/api/workspaces", endpoint=handlers.list_workspaces, methods=["GET"]),
        Route("/api/workspaces", endpoint=handlers.create_workspace, methods=["POST"]),
        Route("/api/workspaces", endpoint=handlers.workspace_action, methods=["PATCH"]),
        Route("/api/workspaces/bulk", endpoint=handlers.bulk_workspaces, methods=["POST"]),
        Route(
            "/api/workspaces/{workspace_id}/reboot",
            endpoint=handlers.reboot_workspace,
            methods=["POST"],
        ),
        Route(
            "/api/workspaces/{workspace_id}",
            endpoint=handlers.update_workspace,
            methods=["PATCH"],
        ),
        Route(
            "/api/workspaces/{workspace_id}",
            endpoint=handlers.terminate_workspace,
            methods=["DELETE"],
        ),
        Route("/api/ai-usage", endpoint=handlers.list_ai_usage, methods=["GET"]),
        Route("/api/ai-usage", endpoint=handlers.create_ai_usage, methods=["POST"]),
        Route(
            "/api/aws/connection-status",
            endpoint=handlers.connection_status,
            methods=["GET"],
        ),
    ]


def create_http_app(context: AppContext | None = None) -> Starlette:
    """Create the dashboard API application.

    ``context`` defaults to the cached process-wide context.
    """
    ctx = context or get_app_context()
    settings = ctx.settings

    middleware: list[Middleware] = [
        Middleware(
            RequestLogMiddleware,
            trust_forwarded_headers=settings.server.http_trust_forwarded_headers,
        ),
    ]

    # CORS must be outermost so preflight requests are answered before logging.
    if settings.server.http_enable_cors and settings.server.http_allowed_origins:
        from starlette.middleware.cors import CORSMiddleware

        middleware.insert(
            0,
            Middleware(
                CORSMiddleware,
                allow_origins=list(settings.server.http_allowed_origins),
                allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
                allow_headers=["Content-Type", "Accept", "X-Request-Id"],
            ),
        )

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info(
            "Starting CloudGov Dashboard API (environment=%s, data=%s)",
            settings.server.environment,
            "dynamodb" if settings.aws.use_real_aws else "mock",
        )
        try:
            yield
        finally:
            logger.info("Stopping CloudGov Dashboard API...")

    app = Starlette(
        routes=_build_routes(),
        middleware=middleware,
        lifespan=lifespan,
    )
    app.state.context = ctx
    return app
