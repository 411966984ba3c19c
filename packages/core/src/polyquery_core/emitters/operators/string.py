"""LIKE -> $regex (case-insensitive, SQL wildcards translated)."""

from __future__ import annotations

import re
from typing import Any

from ...exceptions import QueryValidationError
from ...operators import Operator

# "s" lets a wildcard span newlines, as SQL LIKE does.
REGEX_OPTIONS = "is"


def like_to_regex(pattern: str) -> str:
    """Translate a SQL LIKE pattern into a regular expression.

    ``%`` matches any run of characters and ``_`` a single character; every
    other character is matched literally. The regex is anchored on each side
    unless the pattern starts or ends with ``%``.
    """
    body = pattern.strip("%")
    out: list[str] = []
    for ch in body:
        if ch == "%":
            out.append(".*")
        elif ch == "_":
            out.append(".")
        else:
            out.append(re.escape(ch))
    head = "" if pattern.startswith("%") else "^"
    tail = "" if pattern.endswith("%") else "$"
    return head + "".join(out) + tail


def compile_string(field: str, op: Operator, val: Any) -> dict[str, Any] | None:
    if op != Operator.LIKE:
        return None
    if not isinstance(val, str):
        raise QueryValidationError("LIKE requires a string pattern", field=field)
    return {field: {"$regex": like_to_regex(val), "$options": REGEX_OPTIONS}}
