import os
from urllib.parse import urlsplit, urlunsplit

import pytest
import pytest_asyncio
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from learnmongo import connect, disconnect, disable_tracing

TEST_ENDPOINT = os.environ.get("LEARNMONGO_TEST_URI", "mongodb://localhost:27017")
TEST_DATABASE = "learnmongo_test"


def database_uri(endpoint: str, database: str) -> str:
    """``endpoint`` with its path replaced by ``database``."""
    parts = urlsplit(endpoint)
    return urlunsplit((parts.scheme, parts.netloc, f"/{database}", parts.query, ""))


async def _hello() -> dict | None:
    client = AsyncMongoClient(TEST_ENDPOINT, serverSelectionTimeoutMS=1000)
    try:
        return await client.admin.command("hello")
    except PyMongoError:
        return None
    finally:
        await client.close()


@pytest_asyncio.fixture
async def mongo_server():
    """Server handshake info; skips the test when MongoDB is unreachable."""
    hello = await _hello()
    if hello is None:
        pytest.skip(f"MongoDB not reachable at {TEST_ENDPOINT}")
    return hello


@pytest.fixture
def mongo_endpoint():
    """Server endpoint the live tests run against (`LEARNMONGO_TEST_URI`)."""
    return TEST_ENDPOINT


@pytest.fixture
def database_uri_for(mongo_endpoint):
    """Build a connection URI for a named database on the test server."""
    return lambda database: database_uri(mongo_endpoint, database)


@pytest_asyncio.fixture
async def replica_set(mongo_server):
    if not mongo_server.get("setName"):
        pytest.skip("transactions need a replica set")
    return mongo_server


@pytest_asyncio.fixture
async def admin_client(mongo_server):
    client = AsyncMongoClient(TEST_ENDPOINT)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def mongo_connection(admin_client):
    """Connect the default alias to a scratch database, drop it afterwards."""
    db = await connect(database_uri(TEST_ENDPOINT, TEST_DATABASE))
    yield db
    disable_tracing()
    await disconnect()
    await admin_client.drop_database(TEST_DATABASE)
