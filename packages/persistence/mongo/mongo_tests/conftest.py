"""Test configuration for the MongoDB adapter."""

import pytest
import pytest_asyncio

from polyquery_mongo import MongoAdapter, MongoConnectionManager


class MockSession:
    """Mock MongoDB session for testing with mongomock.

    Motor's ClientSession uses sync start_transaction() and end_session();
    commit_transaction/abort_transaction are async.
    """

    def __init__(self):
        self._in_transaction = False
        self.committed = False
        self.aborted = False
        self.ended = False

    def in_transaction(self):
        return self._in_transaction

    def start_transaction(self):
        self._in_transaction = True

    async def commit_transaction(self):
        self._in_transaction = False
        self.committed = True

    async def abort_transaction(self):
        self._in_transaction = False
        self.aborted = True

    def end_session(self):
        self._in_transaction = False
        self.ended = True


@pytest.fixture
def mock_session_factory():
    """Callable returning a fresh MockSession; created sessions are kept in order."""
    created = []

    async def start_session():
        session = MockSession()
        created.append(session)
        return session

    start_session.created = created
    return start_session


@pytest_asyncio.fixture
async def mongo_connection(mock_session_factory):
    """A connection manager backed by mongomock instead of a server."""
    mongomock_motor = pytest.importorskip("mongomock_motor")

    connection = MongoConnectionManager.__new__(MongoConnectionManager)
    connection._client = mongomock_motor.AsyncMongoMockClient(
        default_database_name="test_db"
    )
    connection._database = "test_db"
    connection._url = "mongodb://mock:27017"

    async def _mock_connect():
        return connection._client

    connection.connect = _mock_connect
    connection._client.start_session = mock_session_factory
    return connection


@pytest_asyncio.fixture
async def adapter(mongo_connection):
    mongo_adapter = MongoAdapter(connection=mongo_connection)
    await mongo_adapter.connect()
    return mongo_adapter


@pytest_asyncio.fixture
async def products(adapter):
    await adapter.db["products"].insert_many(
        [
            {"sku": "A1", "name": "Laptop Pro", "category": "electronics", "price": 1500},
            {"sku": "A2", "name": "Laptop Air", "category": "electronics", "price": 900},
            {"sku": "B1", "name": "Desk", "category": "furniture", "price": 300},
            {"sku": "C1", "name": "Phone", "category": "electronics", "price": 700},
        ]
    )
    return adapter
