"""Request logging middleware."""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cloudgov_dashboard.utils.http import get_client_ip

logger = logging.getLogger(__name__)

# Control character pattern for log injection prevention.
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")

_MAX_REQUEST_ID_LENGTH = 128


def _sanitize_log_value(value: str) -> str:
    """Replace control characters (newlines, tabs, etc.) to prevent log injection."""
    return _CONTROL_CHAR_RE.sub("_", value)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Log the start and end of every API request.

    The request id is taken from ``x-request-id`` when the caller sends one
    and echoed back on the response.
    """

    # Paths exempt from request logging
    EXEMPT_PATHS = frozenset({"/api/health"})

    def __init__(self, app: Callable, trust_forwarded_headers: bool = False) -> None:
        super().__init__(app)
        self._trust_forwarded_headers = trust_forwarded_headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        raw_request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id = _sanitize_log_value(raw_request_id[:_MAX_REQUEST_ID_LENGTH])
        start_time = time.time()

        client_ip = get_client_ip(
            request,
            trust_forwarded_headers=self._trust_forwarded_headers,
        )
        safe_path = _sanitize_log_value(request.url.path)
        safe_ip = _sanitize_log_value(client_ip)

        logger.info(
            "REQUEST_START request_id=%s method=%s path=%s client_ip=%s",
            request_id,
            request.method,
            safe_path,
            safe_ip,
        )

        status_code = 500
        error_type: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
            return response
        except Exception as e:
            error_type = type(e).__name__
            raise
        finally:
            duration_ms = int((time.time() - start_time) * 1000)
            if error_type:
                logger.error(
                    "REQUEST_END request_id=%s method=%s path=%s "
                    "status=%s duration_ms=%d error=%s",
                    request_id,
                    request.method,
                    safe_path,
                    status_code,
                    duration_ms,
                    error_type,
                )
            else:
                logger.info(
                    "REQUEST_END request_id=%s method=%s path=%s status=%s duration_ms=%d",
                    request_id,
                    request.method,
                    safe_path,
                    status_code,
                    duration_ms,
                )
