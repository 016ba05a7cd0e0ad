"""JSON envelope helpers shared by every API route."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from starlette.responses import JSONResponse

from cloudgov_dashboard.utils.serialization import json_default
from cloudgov_dashboard.utils.time import utc_now_iso


class EnvelopeJSONResponse(JSONResponse):
    """JSONResponse that understands datetimes, enums and Decimals."""

    def render(self, content: Any) -> bytes:
        return json.dumps(
            content,
            default=json_default,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        ).encode("utf-8")


def success_response(
    data: Any,
    *,
    metadata: Mapping[str, Any] | None = None,
    message: str | None = None,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
) -> EnvelopeJSONResponse:
    body: dict[str, Any] = {"success": True, "data": data}
    if metadata is not None:
        body["metadata"] = dict(metadata)
    if message is not None:
        body["message"] = message
    body["timestamp"] = utc_now_iso()
    return EnvelopeJSONResponse(body, status_code=status_code, headers=headers)


def error_response(
    error: str,
    status_code: int,
    details: Any = None,
) -> EnvelopeJSONResponse:
    body: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    body["timestamp"] = utc_now_iso()
    return EnvelopeJSONResponse(body, status_code=status_code)
