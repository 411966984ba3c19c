"""Full-text search passes through as a top-level $text clause."""

from __future__ import annotations

from typing import Any

from ...descriptor import TextSearch
from ...operators import Operator


def compile_text(_field: str, op: Operator, val: Any) -> dict[str, Any] | None:
    if op != Operator.TEXT:
        return None
    term = val.term if isinstance(val, TextSearch) else val
    return {"$text": {"$search": term}}
