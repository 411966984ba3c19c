"""Test configuration for the SQLAlchemy adapter: in-memory aiosqlite."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from polyquery_sql import SQLAlchemyAdapter

SCHEMA = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT UNIQUE,
        age INTEGER,
        active BOOLEAN DEFAULT 1
    )
    """,
    "CREATE INDEX ix_users_age ON users (age)",
    """
    CREATE TABLE orders (
        id INTEGER PRIMARY KEY,
        user_id INTEGER REFERENCES users (id),
        total REAL
    )
    """,
]


@pytest_asyncio.fixture
async def engine():
    # StaticPool keeps every checkout on the same in-memory database.
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        for statement in SCHEMA:
            await conn.exec_driver_sql(statement)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def adapter(engine):
    sql_adapter = SQLAlchemyAdapter(engine=engine)
    await sql_adapter.connect()
    yield sql_adapter
    await sql_adapter.disconnect()


@pytest_asyncio.fixture
async def seeded(adapter):
    await adapter.execute(
        "INSERT INTO users (name, email, age, active) VALUES "
        "(?, ?, ?, ?), (?, ?, ?, ?), (?, ?, ?, ?)",
        [
            "alice", "alice@example.com", 30, True,
            "bob", "bob@example.com", 17, True,
            "carol", "carol@example.com", 45, False,
        ],
    )
    return adapter
