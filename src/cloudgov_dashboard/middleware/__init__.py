"""HTTP middleware for the dashboard API."""

from .request_log import RequestLogMiddleware

__all__ = ["RequestLogMiddleware"]
