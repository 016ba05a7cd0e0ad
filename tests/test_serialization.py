from __future__ import annotations

import datetime
import json
from decimal import Decimal

from cloudgov_dashboard.domain.models import Severity
from cloudgov_dashboard.transport.responses import (
    EnvelopeJSONResponse,
    error_response,
    success_response,
)
from cloudgov_dashboard.utils.serialization import json_default, to_dynamodb_item


def test_json_default_handles_dates() -> None:
    moment = datetime.datetime(2025, 1, 15, 12, 0, tzinfo=datetime.timezone.utc)
    assert json_default(moment) == "2025-01-15T12:00:00+00:00"
    assert json_default(datetime.date(2025, 1, 15)) == "2025-01-15"


def test_json_default_handles_decimals() -> None:
    assert json_default(Decimal("42")) == 42
    assert isinstance(json_default(Decimal("42")), int)
    assert json_default(Decimal("12.5")) == 12.5
    assert json_default(Decimal("0.1000000000000000000001")) == "0.1000000000000000000001"


def test_json_default_handles_enums_and_bytes() -> None:
    assert json_default(Severity.CRITICAL) == "critical"
    assert json_default(b"hello") == "hello"
    assert json_default(b"\xff\xfe") == "//4="


def test_json_default_falls_back_to_str() -> None:
    assert json_default(object).startswith("<class")


def test_to_dynamodb_item_converts_floats() -> None:
    item = to_dynamodb_item({"cost": 1.25, "count": 3, "nested": {"ratio": 0.5}, "tags": ["a"]})
    assert item == {
        "cost": Decimal("1.25"),
        "count": 3,
        "nested": {"ratio": Decimal("0.5")},
        "tags": ["a"],
    }


def test_envelope_response_renders_extended_types() -> None:
    response = EnvelopeJSONResponse({"when": datetime.date(2025, 1, 1), "n": Decimal("7")})
    assert json.loads(response.body) == {"when": "2025-01-01", "n": 7}


def test_success_response_envelope() -> None:
    response = success_response(
        {"ok": True},
        metadata={"total": 1},
        message="done",
        status_code=201,
        headers={"Cache-Control": "no-store"},
    )
    body = json.loads(response.body)
    assert response.status_code == 201
    assert response.headers["cache-control"] == "no-store"
    assert body["success"] is True
    assert body["data"] == {"ok": True}
    assert body["metadata"] == {"total": 1}
    assert body["message"] == "done"
    assert body["timestamp"].endswith("Z")


def test_success_response_omits_optional_keys() -> None:
    body = json.loads(success_response([1, 2]).body)
    assert set(body) == {"success", "data", "timestamp"}


def test_error_response_envelope() -> None:
    body = json.loads(error_response("Invalid query parameters", 400, [{"loc": ["x"]}]).body)
    assert body["success"] is False
    assert body["error"] == "Invalid query parameters"
    assert body["details"] == [{"loc": ["x"]}]
    assert "details" not in json.loads(error_response("boom", 500).body)
