"""Emitter protocol and the artifacts emitters produce."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..descriptor import QueryDescriptor

DocumentOperation = dict[str, Any]


@dataclass(frozen=True)
class CompiledSQL:
    """Dialect SQL text plus parameters aligned 1:1 with its placeholders."""

    sql: str
    params: list[Any] = field(default_factory=list)
    dialect: str = "sqlite"

    def __str__(self) -> str:
        return self.sql


@runtime_checkable
class IEmitter(Protocol):
    """Translates a finalized descriptor into one engine's native artifact."""

    name: str

    def emit(self, descriptor: QueryDescriptor) -> Any:
        ...
