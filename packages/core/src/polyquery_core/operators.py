from __future__ import annotations

from enum import Enum

from .exceptions import QueryValidationError


class Operator(str, Enum):
    """Predicate operators understood by every emitter."""

    EQ = "="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    IN = "IN"
    BETWEEN = "BETWEEN"
    LIKE = "LIKE"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"
    TEXT = "TEXT"


class Logic(str, Enum):
    """Connector joining a predicate to the one before it."""

    AND = "AND"
    OR = "OR"


class Direction(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class OperationKind(str, Enum):
    """The terminal operation a descriptor describes."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    COUNT = "count"
    AGGREGATE = "aggregate"


class JoinKind(str, Enum):
    INNER = "INNER"
    LEFT = "LEFT"


_ALIASES: dict[str, Operator] = {
    "==": Operator.EQ,
    "<>": Operator.NE,
    "in": Operator.IN,
    "between": Operator.BETWEEN,
    "like": Operator.LIKE,
    "is null": Operator.IS_NULL,
    "is not null": Operator.IS_NOT_NULL,
    "text": Operator.TEXT,
    "$search": Operator.TEXT,
}

# Operators that never bind a parameter.
NULLARY_OPERATORS = frozenset({Operator.IS_NULL, Operator.IS_NOT_NULL})


def parse_operator(op: Operator | str, *, field: str | None = None) -> Operator:
    """Resolve a user-supplied operator token to an :class:`Operator`."""
    if isinstance(op, Operator):
        return op
    token = str(op).strip()
    try:
        return Operator(token.upper())
    except ValueError:
        pass
    alias = _ALIASES.get(token.lower())
    if alias is None:
        valid = ", ".join(o.value for o in Operator)
        raise QueryValidationError(
            f"Unknown operator: {op!r}. Valid operators: {valid}", field=field
        )
    return alias


def parse_direction(direction: Direction | str) -> Direction:
    try:
        return Direction(str(direction).upper())
    except ValueError as e:
        raise QueryValidationError(
            f"Invalid sort direction: {direction!r} (expected ASC or DESC)"
        ) from e
