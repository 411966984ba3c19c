"""
Translate a :class:`QueryDescriptor` into parameterized SQL text.

Clauses are emitted in a fixed order: projection/target, joins, WHERE,
GROUP BY, HAVING, ORDER BY, LIMIT/OFFSET. Parameters are collected while
placeholders are rendered, so the parameter list is always aligned 1:1 with
the placeholders in the text (for UPDATE the SET values come first).

Example::

    emitter = SQLEmitter("postgresql")
    compiled = emitter.emit(descriptor)
    compiled.sql     # "SELECT id FROM users WHERE active = $1"
    compiled.params  # [True]
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ..descriptor import Predicate, PredicateGroup, TextSearch
from ..exceptions import QueryValidationError, UnsupportedOperationError
from ..operators import Operator, OperationKind
from .base import CompiledSQL
from .dialects import get_dialect

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..descriptor import Condition, QueryDescriptor
    from .dialects import SQLDialect

logger = logging.getLogger("polyquery.emitters.sql")


class _Binder:
    """Collects parameters and hands out the matching placeholders."""

    def __init__(self, dialect: SQLDialect) -> None:
        self._dialect = dialect
        self.params: list[Any] = []

    def bind(self, value: Any) -> str:
        self.params.append(value)
        return self._dialect.placeholder(len(self.params))


class SQLEmitter:
    """SQL emitter bound to one dialect strategy, chosen at construction."""

    def __init__(
        self, dialect: str | SQLDialect = "sqlite", *, paramstyle: str | None = None
    ) -> None:
        self.dialect = get_dialect(dialect, paramstyle)
        self.name = f"sql:{self.dialect.name}"
        self._handlers: dict[
            OperationKind, Callable[[QueryDescriptor, _Binder], str]
        ] = {
            OperationKind.SELECT: self._select,
            OperationKind.COUNT: self._count,
            OperationKind.INSERT: self._insert,
            OperationKind.UPDATE: self._update,
            OperationKind.DELETE: self._delete,
        }

    def emit(self, descriptor: QueryDescriptor) -> CompiledSQL:
        """Render ``descriptor`` as SQL text plus ordered parameters.

        Raises:
            UnsupportedOperationError: The operation kind has no SQL form.
            QueryValidationError: The descriptor is incomplete (e.g. an
                INSERT without rows).
        """
        handler = self._handlers.get(descriptor.operation)  # type: ignore[arg-type]
        if handler is None:
            op = descriptor.operation
            raise UnsupportedOperationError(
                op.value if isinstance(op, OperationKind) else op,
                emitter=self.name,
                target=descriptor.target,
            )
        if not descriptor.target:
            raise QueryValidationError(
                f"{descriptor.operation.value} query has no target table"  # type: ignore[union-attr]
            )
        binder = _Binder(self.dialect)
        sql = handler(descriptor, binder)
        logger.debug("Emitted %s: %s %r", self.name, sql, binder.params)
        return CompiledSQL(sql=sql, params=binder.params, dialect=self.dialect.name)

    # -- statements ----------------------------------------------------------

    def _select(self, d: QueryDescriptor, binder: _Binder) -> str:
        fields = ", ".join(d.fields) if d.fields else "*"
        parts = [f"SELECT {fields} FROM {d.target}"]
        parts.extend(self._joins(d))
        parts.extend(self._where(d.where, binder))
        if d.group_by:
            parts.append("GROUP BY " + ", ".join(d.group_by))
        if d.having:
            parts.append("HAVING " + self._conditions(d.having, binder))
        if d.order_by:
            parts.append(
                "ORDER BY "
                + ", ".join(f"{o.field} {o.direction.value}" for o in d.order_by)
            )
        tail = self.dialect.limit_offset(d.limit, d.offset)
        if tail:
            parts.append(tail)
        return " ".join(parts)

    def _count(self, d: QueryDescriptor, binder: _Binder) -> str:
        column = d.fields[0] if d.fields else "*"
        parts = [f"SELECT COUNT({column}) AS count FROM {d.target}"]
        parts.extend(self._joins(d))
        parts.extend(self._where(d.where, binder))
        return " ".join(parts)

    def _insert(self, d: QueryDescriptor, binder: _Binder) -> str:
        if not d.rows:
            raise QueryValidationError("no data to insert", target=d.target)
        columns = list(d.rows[0].keys())
        if not columns:
            raise QueryValidationError("insert row has no columns", target=d.target)
        groups = []
        for row in d.rows:
            placeholders = [binder.bind(row.get(col)) for col in columns]
            groups.append("(" + ", ".join(placeholders) + ")")
        return (
            f"INSERT INTO {d.target} ({', '.join(columns)}) "
            f"VALUES {', '.join(groups)}"
        )

    def _update(self, d: QueryDescriptor, binder: _Binder) -> str:
        if not d.updates:
            raise QueryValidationError("no fields to update", target=d.target)
        assignments = [f"{col} = {binder.bind(val)}" for col, val in d.updates.items()]
        parts = [f"UPDATE {d.target} SET {', '.join(assignments)}"]
        parts.extend(self._where(d.where, binder))
        return " ".join(parts)

    def _delete(self, d: QueryDescriptor, binder: _Binder) -> str:
        parts = [f"DELETE FROM {d.target}"]
        parts.extend(self._where(d.where, binder))
        return " ".join(parts)

    # -- clauses -------------------------------------------------------------

    def _joins(self, d: QueryDescriptor) -> list[str]:
        return [
            f"{j.kind.value} JOIN {j.table} ON {j.first_field} {j.operator} {j.second_field}"
            for j in d.joins
        ]

    def _where(self, conditions: Sequence[Condition], binder: _Binder) -> list[str]:
        rendered = self._conditions(conditions, binder)
        return [f"WHERE {rendered}"] if rendered else []

    def _conditions(self, conditions: Sequence[Condition], binder: _Binder) -> str:
        parts: list[str] = []
        for cond in conditions:
            if isinstance(cond, PredicateGroup):
                if not cond.predicates:
                    continue
                fragment = "(" + self._conditions(cond.predicates, binder) + ")"
            else:
                fragment = self._predicate(cond, binder)
            if parts:
                parts.append(cond.logic.value)
            parts.append(fragment)
        return " ".join(parts)

    def _predicate(self, p: Predicate, binder: _Binder) -> str:
        op = p.operator
        if op == Operator.IN:
            values = _as_list(p)
            if not values:
                return "1 = 0"
            return f"{p.field} IN ({', '.join(binder.bind(v) for v in values)})"
        if op == Operator.BETWEEN:
            low, high = _as_range(p)
            return f"{p.field} BETWEEN {binder.bind(low)} AND {binder.bind(high)}"
        if op == Operator.IS_NULL or (op == Operator.EQ and p.value is None):
            return f"{p.field} IS NULL"
        if op == Operator.IS_NOT_NULL or (op == Operator.NE and p.value is None):
            return f"{p.field} IS NOT NULL"
        if op == Operator.TEXT:
            return self._text_search(p, binder)
        return f"{p.field} {op.value} {binder.bind(p.value)}"

    def _text_search(self, p: Predicate, binder: _Binder) -> str:
        search = p.value if isinstance(p.value, TextSearch) else TextSearch(str(p.value))
        fields = list(search.fields)
        if not fields and p.field and not p.field.startswith("$"):
            fields = [p.field]
        if not fields:
            raise QueryValidationError(
                "full-text search on a SQL target needs explicit fields",
                field=p.field,
            )
        params = self.dialect.text_search_params(search.term, fields)
        placeholders = [binder.bind(v) for v in params]
        return self.dialect.text_search(fields, placeholders)


def _as_list(p: Predicate) -> list[Any]:
    if isinstance(p.value, (str, bytes)) or not isinstance(
        p.value, (Sequence, set, frozenset)
    ):
        raise QueryValidationError("IN requires a list of values", field=p.field)
    return list(p.value)


def _as_range(p: Predicate) -> tuple[Any, Any]:
    if not isinstance(p.value, (list, tuple)) or len(p.value) != 2:
        raise QueryValidationError(
            "BETWEEN requires a list of two values", field=p.field
        )
    return p.value[0], p.value[1]
