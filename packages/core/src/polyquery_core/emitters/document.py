"""
Translate a :class:`QueryDescriptor` into a document-store operation.

The artifact is a plain dict the Mongo adapter dispatches on::

    {
        "collection": "products",
        "method": "find",
        "filter": {"category": "electronics", "price": {"$gte": 100}},
        "projection": {"name": 1},
        "sort": {"price": -1},
        "skip": 20,
        "limit": 10,
    }

Top-level conditions split into OR-separated terms: ``a AND b OR c`` becomes
``{"$or": [{a, b}, {c}]}``. Predicate groups compile recursively the same
way and are merged into the surrounding term.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..descriptor import PredicateGroup
from ..exceptions import QueryValidationError, UnsupportedOperationError
from ..operators import Direction, Logic, OperationKind
from .operators import compile_null, compile_standard, compile_string, compile_text

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..descriptor import Condition, Predicate, QueryDescriptor
    from .base import DocumentOperation

logger = logging.getLogger("polyquery.emitters.document")

_COMPILERS = [
    compile_standard,
    compile_string,
    compile_null,
    compile_text,
]


def _compile_leaf(p: Predicate) -> dict[str, Any]:
    if not p.field:
        raise QueryValidationError("predicate is missing a field")
    for compiler in _COMPILERS:
        result = compiler(p.field, p.operator, p.value)
        if result is not None:
            return result
    raise UnsupportedOperationError(p.operator.value, emitter="mongodb")


def _is_operator_doc(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and bool(value)
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


def _merge(target: dict[str, Any], fragment: dict[str, Any]) -> None:
    """AND ``fragment`` into ``target``, lifting key conflicts into ``$and``."""
    for key, value in fragment.items():
        if key not in target:
            target[key] = value
        elif key == "$and":
            target["$and"].extend(value)
        elif (
            _is_operator_doc(target[key])
            and _is_operator_doc(value)
            and not (target[key].keys() & value.keys())
        ):
            target[key] = {**target[key], **value}
        else:
            target.setdefault("$and", []).append({key: value})


def compile_conditions(conditions: Sequence[Condition]) -> dict[str, Any]:
    """Compile an ordered condition list into a filter document."""
    terms: list[dict[str, Any]] = []
    current: dict[str, Any] = {}
    for cond in conditions:
        if isinstance(cond, PredicateGroup):
            fragment = compile_conditions(cond.predicates)
        else:
            fragment = _compile_leaf(cond)
        if not fragment:
            continue
        if cond.logic == Logic.OR and (current or terms):
            terms.append(current)
            current = {}
        _merge(current, fragment)
    if terms:
        terms.append(current)
        return {"$or": [t for t in terms if t]}
    return current


class MongoEmitter:
    """Document-store emitter.

    Relational joins have no document equivalent; by default they are
    dropped with a warning. Pass ``strict_joins=True`` to reject them.
    """

    name = "mongodb"

    def __init__(self, *, strict_joins: bool = False) -> None:
        self.strict_joins = strict_joins

    def emit(self, descriptor: QueryDescriptor) -> DocumentOperation:
        op = descriptor.operation
        if not descriptor.target:
            raise QueryValidationError("query has no target collection")
        if op == OperationKind.SELECT:
            operation = self._find(descriptor)
        elif op == OperationKind.COUNT:
            operation = self._base(descriptor, "count")
        elif op == OperationKind.INSERT:
            operation = self._insert(descriptor)
        elif op == OperationKind.UPDATE:
            operation = self._update(descriptor)
        elif op == OperationKind.DELETE:
            operation = self._base(descriptor, "delete_many")
        elif op == OperationKind.AGGREGATE:
            operation = {
                "collection": descriptor.target,
                "method": "aggregate",
                "pipeline": [dict(stage) for stage in descriptor.pipeline],
            }
        else:
            raise UnsupportedOperationError(
                op.value if isinstance(op, OperationKind) else str(op),
                emitter=self.name,
                target=descriptor.target,
            )
        logger.debug("Emitted %s operation: %r", self.name, operation)
        return operation

    # -- operations ----------------------------------------------------------

    def _base(self, d: QueryDescriptor, method: str) -> DocumentOperation:
        self._check_joins(d)
        return {
            "collection": d.target,
            "method": method,
            "filter": compile_conditions(d.where),
        }

    def _find(self, d: QueryDescriptor) -> DocumentOperation:
        operation = self._base(d, "find")
        if d.group_by or d.having:
            logger.warning(
                "GROUP BY/HAVING on %s ignored by the document emitter; "
                "use aggregate() with group()",
                d.target,
            )
        projection = self.build_project(d.fields)
        if projection:
            operation["projection"] = projection
        sort = self.build_sort(d)
        if sort:
            operation["sort"] = sort
        if d.offset:
            operation["skip"] = d.offset
        if d.limit is not None:
            operation["limit"] = d.limit
        return operation

    def _insert(self, d: QueryDescriptor) -> DocumentOperation:
        if not d.rows:
            raise QueryValidationError("no data to insert", target=d.target)
        documents = [dict(row) for row in d.rows]
        if len(documents) == 1:
            return {
                "collection": d.target,
                "method": "insert_one",
                "document": documents[0],
            }
        return {
            "collection": d.target,
            "method": "insert_many",
            "documents": documents,
        }

    def _update(self, d: QueryDescriptor) -> DocumentOperation:
        if not d.updates:
            raise QueryValidationError("no fields to update", target=d.target)
        operation = self._base(d, "update_many")
        operation["update"] = {"$set": dict(d.updates)}
        return operation

    # -- helpers -------------------------------------------------------------

    def _check_joins(self, d: QueryDescriptor) -> None:
        if not d.joins:
            return
        if self.strict_joins:
            raise QueryValidationError(
                "joins are not supported by the document emitter; "
                "use aggregate() with lookup()",
                target=d.target,
            )
        logger.warning(
            "Ignoring %d join(s) on %s: joins are not supported by the "
            "document emitter, use aggregate() with lookup()",
            len(d.joins),
            d.target,
        )

    @staticmethod
    def build_sort(d: QueryDescriptor) -> dict[str, int]:
        """Build the sort document: ``{field: 1 | -1}`` in declaration order."""
        return {
            o.field: -1 if o.direction == Direction.DESC else 1 for o in d.order_by
        }

    @staticmethod
    def build_project(fields: list[str] | None) -> dict[str, int] | None:
        """Build a projection ``{field: 1, ...}``. None means every field."""
        if not fields or "*" in fields:
            return None
        return dict.fromkeys(fields, 1)
