"""
Fluent builder for engine-agnostic queries.

Example::

    query = (
        QueryBuilder("postgresql")
        .select(["id", "name"])
        .from_("users")
        .where("active", True)
        .where("age", ">=", 18)
        .search(["name", "email"], "ali")
        .order_by("created_at", "DESC")
        .limit(10)
    )
    compiled = query.to_sql()
    # SELECT id, name FROM users WHERE active = $1 AND age >= $2
    #   AND (name LIKE $3 OR email LIKE $4) ORDER BY created_at DESC LIMIT 10

    operation = query.to_operation()
    # {"collection": "users", "method": "find", "filter": {...}, ...}

Every chained call mutates and returns the same builder. ``clone()`` branches
a query without touching the original; ``reset()`` starts over in place.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .descriptor import (
    Join,
    OrderBy,
    Predicate,
    PredicateGroup,
    QueryDescriptor,
    TextSearch,
)
from .emitters import MongoEmitter, SQLEmitter, compile_conditions, get_emitter
from .exceptions import QueryValidationError
from .operators import (
    NULLARY_OPERATORS,
    JoinKind,
    Logic,
    OperationKind,
    Operator,
    parse_direction,
    parse_operator,
)

if TYPE_CHECKING:
    from .emitters import CompiledSQL, DocumentOperation, IEmitter

_MISSING: Any = object()


def _field_list(fields: str | Sequence[str]) -> list[str]:
    if isinstance(fields, str):
        return [f.strip() for f in fields.split(",") if f.strip()]
    return [str(f) for f in fields]


class QueryBuilder:
    """
    Accumulates one :class:`QueryDescriptor` through chained calls.

    ``target`` names the engine kind the query is meant for (``sqlite``,
    ``postgresql``, ``mysql`` or ``mongodb``); it selects the emitter used by
    :meth:`build` once, at construction. :meth:`to_sql` and
    :meth:`to_operation` render the same descriptor for either family.
    """

    def __init__(
        self,
        target: str = "sqlite",
        *,
        emitter: IEmitter | None = None,
    ) -> None:
        self.target = str(target).lower()
        self._emitter = emitter if emitter is not None else get_emitter(self.target)
        self._descriptor = QueryDescriptor()

    @property
    def descriptor(self) -> QueryDescriptor:
        return self._descriptor

    @property
    def emitter(self) -> IEmitter:
        return self._emitter

    # -- projection / target -------------------------------------------------

    def select(self, fields: str | Sequence[str] = "*") -> QueryBuilder:
        self._descriptor.operation = OperationKind.SELECT
        self._descriptor.fields = _field_list(fields) or ["*"]
        return self

    def from_(self, target: str) -> QueryBuilder:
        """Set the table or collection the query runs against."""
        if not target:
            raise QueryValidationError("target name must not be empty")
        self._descriptor.target = target
        return self

    # -- predicates ----------------------------------------------------------

    def where(
        self, field: str, op_or_value: Any, value: Any = _MISSING
    ) -> QueryBuilder:
        """Add an AND predicate. ``where(f, v)`` means ``where(f, "=", v)``."""
        self._descriptor.where.append(
            self._predicate(field, op_or_value, value, Logic.AND)
        )
        return self

    def or_where(
        self, field: str, op_or_value: Any, value: Any = _MISSING
    ) -> QueryBuilder:
        """Add a predicate joined to the previous condition with OR."""
        self._descriptor.where.append(
            self._predicate(field, op_or_value, value, Logic.OR)
        )
        return self

    def where_in(self, field: str, values: Sequence[Any]) -> QueryBuilder:
        if isinstance(values, (str, bytes)) or not isinstance(
            values, (Sequence, set, frozenset)
        ):
            raise QueryValidationError("IN requires a list of values", field=field)
        self._descriptor.where.append(Predicate(field, Operator.IN, list(values)))
        return self

    def where_between(self, field: str, low: Any, high: Any) -> QueryBuilder:
        self._descriptor.where.append(Predicate(field, Operator.BETWEEN, [low, high]))
        return self

    def where_like(self, field: str, pattern: str) -> QueryBuilder:
        self._descriptor.where.append(Predicate(field, Operator.LIKE, pattern))
        return self

    def where_null(self, field: str) -> QueryBuilder:
        self._descriptor.where.append(Predicate(field, Operator.IS_NULL))
        return self

    def where_not_null(self, field: str) -> QueryBuilder:
        self._descriptor.where.append(Predicate(field, Operator.IS_NOT_NULL))
        return self

    def where_text(
        self, term: str, fields: Sequence[str] | None = None
    ) -> QueryBuilder:
        """Add a full-text predicate.

        Document stores use their text index; relational dialects need
        ``fields`` to know which columns to search.
        """
        self._descriptor.where.append(
            Predicate("$text", Operator.TEXT, TextSearch(term, tuple(fields or ())))
        )
        return self

    def search(self, fields: str | Sequence[str], term: str) -> QueryBuilder:
        """Match ``term`` anywhere in any of ``fields``.

        Adds one parenthesized group of ``LIKE %term%`` predicates joined by
        OR; the group itself is ANDed with the other conditions.
        """
        names = _field_list(fields)
        if not names or not term:
            return self
        group = PredicateGroup(
            [Predicate(f, Operator.LIKE, f"%{term}%", Logic.OR) for f in names],
            Logic.AND,
        )
        self._descriptor.where.append(group)
        return self

    # -- joins ---------------------------------------------------------------

    def join(
        self, table: str, first: str, op_or_second: str, second: str = _MISSING
    ) -> QueryBuilder:
        return self._join(JoinKind.INNER, table, first, op_or_second, second)

    def left_join(
        self, table: str, first: str, op_or_second: str, second: str = _MISSING
    ) -> QueryBuilder:
        return self._join(JoinKind.LEFT, table, first, op_or_second, second)

    def _join(
        self,
        kind: JoinKind,
        table: str,
        first: str,
        op_or_second: str,
        second: str,
    ) -> QueryBuilder:
        if second is _MISSING:
            op, second = "=", op_or_second
        else:
            op = op_or_second
        self._descriptor.joins.append(Join(kind, table, first, op, second))
        return self

    # -- ordering / grouping / paging ----------------------------------------

    def order_by(self, field: str, direction: str = "ASC") -> QueryBuilder:
        self._descriptor.order_by.append(OrderBy(field, parse_direction(direction)))
        return self

    def group_by(self, fields: str | Sequence[str]) -> QueryBuilder:
        self._descriptor.group_by.extend(_field_list(fields))
        return self

    def having(
        self, field: str, op_or_value: Any, value: Any = _MISSING
    ) -> QueryBuilder:
        self._descriptor.having.append(
            self._predicate(field, op_or_value, value, Logic.AND)
        )
        return self

    def limit(self, count: int) -> QueryBuilder:
        self._descriptor.limit = _non_negative("limit", count)
        return self

    def offset(self, count: int) -> QueryBuilder:
        self._descriptor.offset = _non_negative("offset", count)
        return self

    # -- writes --------------------------------------------------------------

    def insert(
        self, data: Mapping[str, Any] | Sequence[Mapping[str, Any]]
    ) -> QueryBuilder:
        """Queue one row (a mapping) or many rows (a list of mappings)."""
        rows = [data] if isinstance(data, Mapping) else list(data)
        for row in rows:
            if not isinstance(row, Mapping):
                raise QueryValidationError("insert rows must be mappings")
        self._descriptor.operation = OperationKind.INSERT
        self._descriptor.rows = [dict(row) for row in rows]
        return self

    def update(self, data: Mapping[str, Any]) -> QueryBuilder:
        self._descriptor.operation = OperationKind.UPDATE
        self._descriptor.updates = dict(data)
        return self

    def delete(self) -> QueryBuilder:
        self._descriptor.operation = OperationKind.DELETE
        return self

    def count(self, field: str = "*") -> QueryBuilder:
        self._descriptor.operation = OperationKind.COUNT
        self._descriptor.fields = [field]
        return self

    # -- aggregation pipeline ------------------------------------------------

    def aggregate(
        self, pipeline: Sequence[Mapping[str, Any]] | None = None
    ) -> QueryBuilder:
        """Switch to a pipeline query, optionally seeding its stages."""
        self._descriptor.operation = OperationKind.AGGREGATE
        for stage in pipeline or ():
            self._descriptor.pipeline.append(dict(stage))
        return self

    def match(self, conditions: Mapping[str, Any] | None = None) -> QueryBuilder:
        """Append a ``$match`` stage.

        Without ``conditions`` the predicates accumulated so far through the
        ``where*`` methods are compiled into the stage.
        """
        if conditions is None:
            stage = compile_conditions(self._descriptor.where)
        else:
            stage = dict(conditions)
        return self._stage({"$match": stage})

    def group(
        self, group_by: str | Sequence[str] | None, **accumulators: Any
    ) -> QueryBuilder:
        """Append a ``$group`` stage keyed on one or more fields.

        Example::

            .group("category", total={"$sum": "$price"}, n={"$sum": 1})
        """
        key: Any
        if group_by is None:
            key = None
        elif isinstance(group_by, str):
            key = group_by if group_by.startswith("$") else f"${group_by}"
        else:
            key = {f: f"${f}" for f in group_by}
        return self._stage({"$group": {"_id": key, **accumulators}})

    def lookup(
        self, from_: str, local_field: str, foreign_field: str, as_: str
    ) -> QueryBuilder:
        """Append a ``$lookup`` stage (the document-store stand-in for a join)."""
        return self._stage(
            {
                "$lookup": {
                    "from": from_,
                    "localField": local_field,
                    "foreignField": foreign_field,
                    "as": as_,
                }
            }
        )

    def _stage(self, stage: dict[str, Any]) -> QueryBuilder:
        self._descriptor.operation = OperationKind.AGGREGATE
        self._descriptor.pipeline.append(stage)
        return self

    # -- terminals -----------------------------------------------------------

    def build(self) -> CompiledSQL | DocumentOperation:
        """Emit the native artifact for the construction target."""
        return self._emitter.emit(self._descriptor)  # type: ignore[no-any-return]

    def to_sql(self, dialect: str | None = None) -> CompiledSQL:
        """Emit parameterized SQL for ``dialect`` (default: the builder's)."""
        return self._sql_emitter(dialect).emit(self._descriptor)

    def get_params(self, dialect: str | None = None) -> list[Any]:
        """Return the parameters aligned with :meth:`to_sql` placeholders."""
        return self.to_sql(dialect).params

    def to_operation(self) -> DocumentOperation:
        """Emit the structured document-store operation."""
        emitter = (
            self._emitter if isinstance(self._emitter, MongoEmitter) else MongoEmitter()
        )
        return emitter.emit(self._descriptor)

    # -- lifecycle -----------------------------------------------------------

    def reset(self) -> QueryBuilder:
        """Discard all accumulated state and return ``self`` for reuse."""
        self._descriptor = QueryDescriptor()
        return self

    def clone(self) -> QueryBuilder:
        """Return an independent builder over a deep copy of the descriptor."""
        other = QueryBuilder(self.target, emitter=self._emitter)
        other._descriptor = self._descriptor.copy()
        return other

    def __repr__(self) -> str:
        d = self._descriptor
        op = d.operation.value if d.operation else None
        return f"QueryBuilder(target={self.target!r}, operation={op!r}, on={d.target!r})"

    # -- internals -----------------------------------------------------------

    def _sql_emitter(self, dialect: str | None) -> SQLEmitter:
        if dialect is not None:
            return SQLEmitter(dialect)
        if isinstance(self._emitter, SQLEmitter):
            return self._emitter
        return SQLEmitter()

    @staticmethod
    def _predicate(
        field: str, op_or_value: Any, value: Any, logic: Logic
    ) -> Predicate:
        if not field:
            raise QueryValidationError("predicate field must not be empty")
        if value is _MISSING:
            return Predicate(field, Operator.EQ, op_or_value, logic)
        op = parse_operator(op_or_value, field=field)
        if op in NULLARY_OPERATORS:
            value = None
        elif op == Operator.TEXT and not isinstance(value, TextSearch):
            value = TextSearch(str(value))
        return Predicate(field, op, value, logic)


def _non_negative(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise QueryValidationError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise QueryValidationError(f"{name} must not be negative, got {value}")
    return value
