"""Adapter factory: pick the engine binding for a ConnectionConfig."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

from .config import ConnectionConfig
from .exceptions import QueryValidationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from .ports.adapter import DatabaseAdapter

# Bindings are imported lazily so the core never depends on a driver.
_BINDINGS: dict[str, str] = {
    "postgresql": "polyquery_sql:SQLAlchemyAdapter",
    "mysql": "polyquery_sql:SQLAlchemyAdapter",
    "sqlite": "polyquery_sql:SQLAlchemyAdapter",
    "mongodb": "polyquery_mongo:MongoAdapter",
}

_registry: dict[str, Callable[[ConnectionConfig], DatabaseAdapter]] = {}


def register_adapter(
    engine_kind: str, factory: Callable[[ConnectionConfig], DatabaseAdapter]
) -> None:
    """Register (or override) the binding used for ``engine_kind``."""
    _registry[engine_kind] = factory


def _load_binding(engine_kind: str) -> Callable[[ConnectionConfig], DatabaseAdapter]:
    path = _BINDINGS.get(engine_kind)
    if path is None:
        raise QueryValidationError(f"Unsupported engine kind: {engine_kind!r}")
    module_name, _, attr = path.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise QueryValidationError(
            f"No adapter installed for {engine_kind!r} (missing {module_name})"
        ) from exc
    return getattr(module, attr)  # type: ignore[no-any-return]


def create_adapter(
    config: ConnectionConfig | None = None, **overrides: Any
) -> DatabaseAdapter:
    """Build the adapter for ``config`` (environment defaults when omitted)."""
    if config is None:
        config = ConnectionConfig(**overrides)
    elif overrides:
        config = config.model_copy(update=overrides)
    factory = _registry.get(config.engine_kind) or _load_binding(config.engine_kind)
    return factory(config)
