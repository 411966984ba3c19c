"""Async engine construction from a ConnectionConfig."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

if TYPE_CHECKING:
    from polyquery_core.config import ConnectionConfig

# Driver-specific name of the connect timeout argument.
_TIMEOUT_ARG = {
    "postgresql": "timeout",
    "mysql": "connect_timeout",
    "sqlite": "timeout",
}


def engine_options(config: ConnectionConfig) -> dict[str, Any]:
    """Keyword arguments for :func:`create_async_engine`."""
    options = dict(config.options)
    connect_args = dict(options.pop("connect_args", {}))
    timeout_arg = _TIMEOUT_ARG.get(config.engine_kind)
    if timeout_arg:
        timeout: float | int = config.connect_timeout
        if config.engine_kind == "mysql":
            timeout = int(timeout)
        connect_args.setdefault(timeout_arg, timeout)
    options["connect_args"] = connect_args
    if config.engine_kind != "sqlite":
        options.setdefault("pool_size", config.pool_size)
        options.setdefault("max_overflow", config.max_overflow)
        options.setdefault("pool_pre_ping", True)
    return options


def build_engine(config: ConnectionConfig) -> AsyncEngine:
    return create_async_engine(config.url(), **engine_options(config))
