"""
SQL dialect strategies.

Each dialect is selected once (by name) and owns the details that differ
between relational engines: placeholder style and full-text rendering.
The :class:`~polyquery_core.emitters.sql.SQLEmitter` never branches on the
dialect name itself.
"""

from __future__ import annotations

from typing import Any, ClassVar

from ..exceptions import QueryValidationError

# DBAPI paramstyles supported for positional binding.
_PLACEHOLDERS = {
    "qmark": lambda index: "?",
    "format": lambda index: "%s",
    "pyformat": lambda index: "%s",
    "numeric": lambda index: f":{index}",
    "numeric_dollar": lambda index: f"${index}",
}

SUPPORTED_PARAMSTYLES = frozenset(_PLACEHOLDERS)


class SQLDialect:
    """Base dialect: ANSI SQL, ``?`` placeholders, LIKE-based text search."""

    name: ClassVar[str] = "sqlite"
    default_paramstyle: ClassVar[str] = "qmark"

    def __init__(self, paramstyle: str | None = None) -> None:
        style = paramstyle or self.default_paramstyle
        if style not in _PLACEHOLDERS:
            raise QueryValidationError(
                f"Unsupported paramstyle {style!r} for dialect {self.name}"
            )
        self.paramstyle = style
        self._render = _PLACEHOLDERS[style]

    def placeholder(self, index: int) -> str:
        """Return the placeholder for the 1-based parameter ``index``."""
        return self._render(index)

    def limit_offset(self, limit: int | None, offset: int | None) -> str:
        """Render the trailing LIMIT/OFFSET clause (empty when neither is set)."""
        if limit is None and not offset:
            return ""
        if limit is None:
            return f"LIMIT -1 OFFSET {offset}"
        if offset:
            return f"LIMIT {limit} OFFSET {offset}"
        return f"LIMIT {limit}"

    # -- full-text search ----------------------------------------------------

    def text_search(self, fields: list[str], placeholders: list[str]) -> str:
        return (
            "("
            + " OR ".join(f"{f} LIKE {p}" for f, p in zip(fields, placeholders))
            + ")"
        )

    def text_search_params(self, term: str, fields: list[str]) -> list[Any]:
        return [f"%{term}%"] * len(fields)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(paramstyle={self.paramstyle!r})"


class SQLiteDialect(SQLDialect):
    name = "sqlite"
    default_paramstyle = "qmark"


class MySQLDialect(SQLDialect):
    name = "mysql"
    default_paramstyle = "format"

    def limit_offset(self, limit: int | None, offset: int | None) -> str:
        if limit is None and offset:
            # MySQL has no bare OFFSET; use the documented max-rows sentinel.
            return f"LIMIT 18446744073709551615 OFFSET {offset}"
        return super().limit_offset(limit, offset)

    def text_search(self, fields: list[str], placeholders: list[str]) -> str:
        return (
            f"MATCH({', '.join(fields)}) "
            f"AGAINST ({placeholders[0]} IN NATURAL LANGUAGE MODE)"
        )

    def text_search_params(self, term: str, fields: list[str]) -> list[Any]:
        return [term]


class PostgreSQLDialect(SQLDialect):
    name = "postgresql"
    default_paramstyle = "numeric_dollar"

    def limit_offset(self, limit: int | None, offset: int | None) -> str:
        if limit is None and offset:
            return f"OFFSET {offset}"
        return super().limit_offset(limit, offset)

    def text_search(self, fields: list[str], placeholders: list[str]) -> str:
        document = " || ' ' || ".join(f"coalesce({f}::text, '')" for f in fields)
        return f"to_tsvector({document}) @@ plainto_tsquery({placeholders[0]})"

    def text_search_params(self, term: str, fields: list[str]) -> list[Any]:
        return [term]


_DIALECTS: dict[str, type[SQLDialect]] = {
    "sqlite": SQLiteDialect,
    "mysql": MySQLDialect,
    "mariadb": MySQLDialect,
    "postgresql": PostgreSQLDialect,
    "postgres": PostgreSQLDialect,
}


def get_dialect(
    dialect: str | SQLDialect, paramstyle: str | None = None
) -> SQLDialect:
    """Resolve a dialect name (or instance) to a dialect strategy."""
    if isinstance(dialect, SQLDialect):
        if paramstyle is None or paramstyle == dialect.paramstyle:
            return dialect
        return type(dialect)(paramstyle)
    cls = _DIALECTS.get(str(dialect).lower())
    if cls is None:
        raise QueryValidationError(
            f"Unknown SQL dialect: {dialect!r}. "
            f"Valid dialects: {', '.join(sorted(_DIALECTS))}"
        )
    return cls(paramstyle)
