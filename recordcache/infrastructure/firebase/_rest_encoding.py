"""Encode/decode Python values to/from Firestore REST API 'fields' format."""

import base64
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def encode_value(v: Any) -> dict:
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, Enum):
        return encode_value(v.value)
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, Decimal):
        return {"doubleValue": float(v)}
    if isinstance(v, datetime):
        if v.tzinfo is not None:
            v = v.astimezone(UTC)
        return {"timestampValue": v.strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(v, date):
        return {"stringValue": v.isoformat()}
    if isinstance(v, (str, UUID)):
        return {"stringValue": str(v)}
    if isinstance(v, bytes):
        return {"bytesValue": base64.standard_b64encode(v).decode("ascii")}
    if isinstance(v, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": {"fields": {k: encode_value(x) for k, x in v.items()}}}
    raise TypeError(f"Unsupported Firestore value type: {type(v)}")


def encode_fields(data: dict[str, Any]) -> dict:
    """Convert a Python dict to a Firestore REST Document body."""
    return {"fields": {k: encode_value(v) for k, v in data.items()}}


def decode_value(obj: dict) -> Any:
    if "nullValue" in obj:
        return None
    if "booleanValue" in obj:
        return obj["booleanValue"]
    if "integerValue" in obj:
        return int(obj["integerValue"])
    if "doubleValue" in obj:
        return obj["doubleValue"]
    if "timestampValue" in obj:
        return datetime.fromisoformat(obj["timestampValue"].replace("Z", "+00:00"))
    if "stringValue" in obj:
        return obj["stringValue"]
    if "bytesValue" in obj:
        return base64.standard_b64decode(obj["bytesValue"])
    if "referenceValue" in obj:
        return obj["referenceValue"]
    if "arrayValue" in obj:
        vals = obj.get("arrayValue", {}).get("values") or []
        return [decode_value(x) for x in vals]
    if "mapValue" in obj:
        fields = obj["mapValue"].get("fields") or {}
        return {k: decode_value(x) for k, x in fields.items()}
    return None


def decode_fields(document: dict | None) -> dict:
    """Convert a Firestore REST Document to a Python dict of its fields."""
    if not document:
        return {}
    return {k: decode_value(v) for k, v in (document.get("fields") or {}).items()}


def nest_field_paths(fields: dict[str, Any]) -> dict[str, Any]:
    """Expand dotted field paths ('addr.country') into nested maps."""
    nested: dict[str, Any] = {}
    for path, value in fields.items():
        parts = path.split(".")
        target = nested
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value
    return nested
