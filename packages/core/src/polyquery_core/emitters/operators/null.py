"""Null checks -> raw None / $ne."""

from __future__ import annotations

from typing import Any

from ...operators import Operator


def compile_null(field: str, op: Operator, _val: Any) -> dict[str, Any] | None:
    if op == Operator.IS_NULL:
        return {field: None}
    if op == Operator.IS_NOT_NULL:
        return {field: {"$ne": None}}
    return None
