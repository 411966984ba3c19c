"""
Canonical, engine-agnostic intermediate representation of one query.

A ``QueryDescriptor`` is what the fluent ``QueryBuilder`` accumulates and
what every emitter consumes. Clause lists keep declaration order; emitters
rely on it for AND/OR precedence and sort tie-breaks.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from .operators import Direction, JoinKind, Logic, OperationKind, Operator


@dataclass
class Predicate:
    """A single ``field <operator> value`` condition."""

    field: str
    operator: Operator
    value: Any = None
    logic: Logic = Logic.AND


@dataclass
class PredicateGroup:
    """A parenthesized block of predicates with its own connector.

    ``logic`` joins the whole group to the preceding condition; each member
    predicate's own ``logic`` joins it to its sibling inside the group.
    """

    predicates: list[Predicate] = field(default_factory=list)
    logic: Logic = Logic.AND


Condition = Predicate | PredicateGroup


@dataclass(frozen=True)
class TextSearch:
    """Value of a full-text predicate: the term and the fields it spans."""

    term: str
    fields: tuple[str, ...] = ()


@dataclass
class Join:
    kind: JoinKind
    table: str
    first_field: str
    operator: str
    second_field: str


@dataclass
class OrderBy:
    field: str
    direction: Direction = Direction.ASC


@dataclass
class QueryDescriptor:
    """Mutable accumulator state for one query.

    Attributes:
        operation: The active terminal operation kind (``None`` until set).
        target: Table or collection name.
        fields: Projection (``["*"]`` means every field).
        where: Ordered predicates and predicate groups.
        joins: Relational joins in declaration order.
        order_by: Sort keys in declaration order.
        group_by: Grouping fields.
        having: Ordered HAVING predicates.
        limit: Maximum rows, or ``None``.
        offset: Rows to skip, or ``None``.
        rows: Queued insert rows.
        updates: Field map for UPDATE.
        pipeline: Aggregation stages, opaque and kept verbatim.
    """

    operation: OperationKind | None = None
    target: str | None = None
    fields: list[str] = field(default_factory=list)
    where: list[Condition] = field(default_factory=list)
    joins: list[Join] = field(default_factory=list)
    order_by: list[OrderBy] = field(default_factory=list)
    group_by: list[str] = field(default_factory=list)
    having: list[Predicate] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    rows: list[dict[str, Any]] = field(default_factory=list)
    updates: dict[str, Any] = field(default_factory=dict)
    pipeline: list[dict[str, Any]] = field(default_factory=list)

    def copy(self) -> QueryDescriptor:
        """Return a deep copy sharing no mutable state with ``self``."""
        return copy.deepcopy(self)
