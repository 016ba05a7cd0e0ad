"""Entrypoint for the CloudGov Dashboard API server."""

from __future__ import annotations

import sys
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

import uvicorn

from cloudgov_dashboard import __version__
from cloudgov_dashboard.config import load_settings
from cloudgov_dashboard.logging_utils import configure_logging, get_logger


def run_entrypoint() -> None:
    """Configure logging and serve the API with uvicorn."""
    settings = load_settings()
    configure_logging()
    logger = get_logger(__name__)
    logger.info("Initializing CloudGov Dashboard API v%s", __version__)
    if settings.logging.file:
        logger.info("Log file configured at: %s", settings.logging.file)

    from cloudgov_dashboard.transport.http_server import create_http_app

    app = create_http_app()
    # The API is plain JSON over HTTP and does not expose websocket endpoints.
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        ws="none",
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
