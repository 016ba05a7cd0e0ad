"""Shared HTTP utilities."""

from __future__ import annotations

import re

from starlette.requests import Request

_UNSAFE_IP_CHARS = re.compile(r"[^0-9A-Fa-f:.\-]")


def first_forwarded_value(value: str | None) -> str | None:
    """Extract the first value from a comma-separated forwarded header.

    Used with X-Forwarded-For, X-Forwarded-Host, X-Forwarded-Proto, etc.
    """
    if not value:
        return None
    first = value.split(",", 1)[0].strip()
    return first or None


def _sanitize_ip(value: str) -> str:
    return _UNSAFE_IP_CHARS.sub("", value)[:64] or "unknown"


def get_client_ip(request: Request, trust_forwarded_headers: bool = False) -> str:
    """Get client IP with optional trusted proxy header support."""
    if trust_forwarded_headers:
        forwarded_for = first_forwarded_value(request.headers.get("x-forwarded-for"))
        if forwarded_for:
            return _sanitize_ip(forwarded_for)

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return _sanitize_ip(real_ip.strip())

    if request.client:
        return request.client.host

    return "unknown"
