"""Standard comparison operators for document-store filters."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ...exceptions import QueryValidationError
from ...operators import Operator

_COMPARISON_MAP: dict[Operator, str] = {
    Operator.NE: "$ne",
    Operator.GT: "$gt",
    Operator.GE: "$gte",
    Operator.LT: "$lt",
    Operator.LE: "$lte",
}


def compile_standard(field: str, op: Operator, val: Any) -> dict[str, Any] | None:
    """Compile equality, comparison, IN and BETWEEN to filter fragments."""
    if op == Operator.EQ:
        return {field: val}

    mongo_op = _COMPARISON_MAP.get(op)
    if mongo_op:
        return {field: {mongo_op: val}}

    if op == Operator.IN:
        if isinstance(val, (str, bytes)) or not isinstance(
            val, (Sequence, set, frozenset)
        ):
            raise QueryValidationError("IN requires a list of values", field=field)
        return {field: {"$in": list(val)}}

    if op == Operator.BETWEEN:
        if not isinstance(val, (list, tuple)) or len(val) != 2:
            raise QueryValidationError(
                "BETWEEN requires a list of two values", field=field
            )
        return {field: {"$gte": val[0], "$lte": val[1]}}

    return None
