"""BSON documents -> plain Python dicts (ObjectId, Decimal128)."""

from __future__ import annotations

from typing import Any

from bson import Decimal128, ObjectId


def normalize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, dict):
        return {k: normalize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [normalize_value(v) for v in value]
    return value


def normalize_document(doc: dict[str, Any]) -> dict[str, Any]:
    """Return ``doc`` with driver-specific types converted for callers."""
    return {k: normalize_value(v) for k, v in doc.items()}

