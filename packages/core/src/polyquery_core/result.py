"""QueryResult - the normalized shape every adapter returns from execute()."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QueryResult(BaseModel):
    """
    Engine-independent execution result.

    ``rows`` holds selected rows (relational) or documents (document store)
    as plain dicts. ``affected_count`` is the number of rows/documents
    written, deleted or returned. ``inserted_id`` is set for inserts: a
    single identifier, or a list of them for multi-row inserts.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    rows: list[dict[str, Any]] = Field(default_factory=list)
    affected_count: int = 0
    inserted_id: Any = None
    command: str | None = None

    @property
    def documents(self) -> list[dict[str, Any]]:
        return self.rows

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    def scalar(self, column: str | None = None) -> Any:
        """Return one value from the first row (its first column by default)."""
        row = self.first()
        if row is None:
            return None
        if column is None:
            return next(iter(row.values()), None)
        return row.get(column)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
