"""JSON serialization utilities."""

from __future__ import annotations

import base64
import datetime
import decimal
import json
from enum import Enum
from typing import Any


def json_default(obj: object) -> object:
    """JSON serializer for objects not serializable by default json code."""
    if isinstance(obj, (datetime.date, datetime.datetime)):
        return obj.isoformat()
    if isinstance(obj, decimal.Decimal):
        # DynamoDB hands numbers back as Decimal: keep ints as ints and only
        # fall back to a string when a float would lose precision.
        if obj == obj.to_integral_value():
            return int(obj)
        f = float(obj)
        if decimal.Decimal(str(f)) != obj:
            return str(obj)
        return f
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, bytes):
        try:
            return obj.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(obj).decode("utf-8")
    return str(obj)


def to_dynamodb_item(data: dict[str, Any]) -> dict[str, Any]:
    """Round-trip through JSON so floats become Decimal, as boto3 requires."""
    return json.loads(json.dumps(data, default=json_default), parse_float=decimal.Decimal)
