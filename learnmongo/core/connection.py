from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from urllib.parse import urlsplit

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from learnmongo.utils.exceptions import NotConnected

logger = logging.getLogger(__name__)

_DB_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")

_clients: dict[str, AsyncMongoClient] = {}
_databases: dict[str, AsyncDatabase] = {}


def _client_options(server_selection_timeout_ms: int | None) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if server_selection_timeout_ms is not None:
        options["serverSelectionTimeoutMS"] = server_selection_timeout_ms
    return options


def connect_admin(
    endpoint: str, *, server_selection_timeout_ms: int | None = None
) -> AsyncMongoClient:
    """Open an administrative client that is not bound to a database.

    The caller owns the client and must close it.
    """
    logger.info(f"Connecting to MongoDB at {_safe_endpoint(endpoint)} as admin")
    return AsyncMongoClient(endpoint, **_client_options(server_selection_timeout_ms))


async def connect(
    uri: str,
    *,
    alias: str = "default",
    server_selection_timeout_ms: int | None = None,
) -> AsyncDatabase:
    """Connect to a database and register the connection under ``alias``.

    Args:
        uri: MongoDB connection URI (must include database name).
        alias: Connection alias for multi-database setups.
        server_selection_timeout_ms: Optional driver server selection timeout.

    Returns:
        The AsyncDatabase instance.

    Raises:
        ValueError: If URI format is invalid
    """
    db_name = _extract_db_name(uri)
    if alias in _clients:
        await disconnect(alias)

    client = AsyncMongoClient(uri, **_client_options(server_selection_timeout_ms))
    db = client[db_name]
    _clients[alias] = client
    _databases[alias] = db
    logger.info(f"Connected to database '{db_name}' with alias '{alias}'")
    return db


async def disconnect(alias: str = "default") -> None:
    """Close and forget a registered connection. Unknown aliases are ignored."""
    client = _clients.pop(alias, None)
    _databases.pop(alias, None)
    if client is not None:
        await client.close()
        logger.info(f"Disconnected from MongoDB (alias: '{alias}')")


@asynccontextmanager
async def connection(
    uri: str,
    *,
    alias: str = "default",
    server_selection_timeout_ms: int | None = None,
) -> AsyncIterator[AsyncDatabase]:
    """Registered connection that is closed on every exit path."""
    db = await connect(
        uri, alias=alias, server_selection_timeout_ms=server_selection_timeout_ms
    )
    try:
        yield db
    finally:
        await disconnect(alias)


def get_database(alias: str = "default") -> AsyncDatabase:
    """Retrieve a registered database or raise NotConnected."""
    try:
        return _databases[alias]
    except KeyError:
        raise NotConnected(
            f"No connection registered for alias '{alias}'. Call connect() first."
        )


def get_client(alias: str = "default") -> AsyncMongoClient:
    """Retrieve a registered client or raise NotConnected."""
    try:
        return _clients[alias]
    except KeyError:
        raise NotConnected(
            f"No client registered for alias '{alias}'. Call connect() first."
        )


def _extract_db_name(uri: str) -> str:
    """Extract the database name from a MongoDB URI with validation.

    Args:
        uri: MongoDB connection URI

    Returns:
        Database name extracted from URI

    Raises:
        ValueError: If URI format is invalid or database name cannot be extracted
    """
    if not uri:
        raise ValueError("MongoDB URI cannot be empty")

    db_name = urlsplit(uri).path.lstrip("/")
    if not db_name:
        raise ValueError(
            "Cannot extract database name from URI. "
            "Expected format: mongodb://host:port/database"
        )

    if not _DB_NAME_RE.match(db_name):
        raise ValueError(
            f"Invalid database name '{db_name}'. "
            f"Database names can only contain letters, numbers, underscores, and hyphens."
        )

    logger.debug(f"Extracted database name: {db_name}")
    return db_name


def validate_db_name(name: str) -> str:
    if not _DB_NAME_RE.match(name or ""):
        raise ValueError(
            f"Invalid database name '{name}'. "
            f"Database names can only contain letters, numbers, underscores, and hyphens."
        )
    return name


def _safe_endpoint(endpoint: str) -> str:
    """Endpoint with any userinfo stripped, for log lines."""
    parts = urlsplit(endpoint)
    host = parts.netloc.rsplit("@", 1)[-1]
    return f"{parts.scheme}://{host}" if parts.scheme else host
