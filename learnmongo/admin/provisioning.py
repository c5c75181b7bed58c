"""Administrative setup shared by the lessons.

An admin client recreates a database and mints an access key for it: a
database-scoped MongoDB user with a random secret. The lessons then connect
with that key instead of the admin connection.
"""

from __future__ import annotations

import enum
import logging
import secrets
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode, urlsplit

from pydantic import BaseModel, ConfigDict, Field
from pymongo import AsyncMongoClient

from learnmongo.core.connection import connect_admin, validate_db_name
from learnmongo.utils.exceptions import ProvisioningError

logger = logging.getLogger(__name__)

DATABASE_INFO_COLLECTION = "_database_info"


class KeyRole(str, enum.Enum):
    """Access levels for a database key, as MongoDB built-in roles."""

    SERVER = "dbOwner"
    READ_WRITE = "readWrite"
    READ = "read"


class DatabaseKey(BaseModel):
    """Credentials scoped to a single database."""

    model_config = ConfigDict(frozen=True)

    database: str
    username: str
    secret: str = Field(repr=False)
    role: KeyRole = KeyRole.SERVER

    def connection_uri(self, endpoint: str) -> str:
        """URI for ``endpoint`` that authenticates with this key.

        Query options on the endpoint (e.g. ``replicaSet``) are kept.
        """
        parts = urlsplit(endpoint)
        if not parts.scheme.startswith("mongodb"):
            raise ValueError(f"Not a MongoDB endpoint: {endpoint!r}")
        hosts = parts.netloc.rsplit("@", 1)[-1]
        options = dict(parse_qsl(parts.query))
        options["authSource"] = self.database
        userinfo = f"{quote(self.username, safe='')}:{quote(self.secret, safe='')}"
        return f"{parts.scheme}://{userinfo}@{hosts}/{self.database}?{urlencode(options)}"

    def redacted(self) -> str:
        return f"{self.username}:{self.secret[:4]}..."


async def database_exists(client: AsyncMongoClient, name: str) -> bool:
    return name in await client.list_database_names()


async def delete_database(client: AsyncMongoClient, name: str) -> bool:
    """Drop a database and the users defined on it.

    Returns:
        True if the database existed
    """
    validate_db_name(name)
    existed = await database_exists(client, name)
    db = client[name]
    await db.command("dropAllUsersFromDatabase")
    if existed:
        await client.drop_database(name)
        logger.info("Deleted database %s", name)
    return existed


async def create_database(
    client: AsyncMongoClient, name: str, *, replace: bool = True
) -> dict[str, Any]:
    """Create ``name``, recreating it if it already exists and ``replace`` is set.

    MongoDB creates databases lazily, so an info document is written to make
    the database visible right away. That document is returned.

    Raises:
        ProvisioningError: If the database exists and ``replace`` is False
    """
    validate_db_name(name)
    if replace:
        await delete_database(client, name)
    elif await database_exists(client, name):
        raise ProvisioningError(f"Database '{name}' already exists")

    info = {"name": name, "created_at": datetime.now(timezone.utc)}
    result = await client[name][DATABASE_INFO_COLLECTION].insert_one(info)
    info["_id"] = result.inserted_id
    logger.info("Created database %s", name)
    return info


async def create_key(
    client: AsyncMongoClient, database: str, role: KeyRole = KeyRole.SERVER
) -> DatabaseKey:
    """Create a user on ``database`` with a fresh random secret."""
    validate_db_name(database)
    key = DatabaseKey(
        database=database,
        username=f"key_{secrets.token_hex(6)}",
        secret=secrets.token_urlsafe(24),
        role=role,
    )
    await client[database].command(
        "createUser",
        key.username,
        pwd=key.secret,
        roles=[{"role": role.value, "db": database}],
    )
    logger.info("Created %s key %s for database %s", role.name.lower(), key.redacted(), database)
    return key


async def provision(
    endpoint: str,
    database: str,
    role: KeyRole = KeyRole.SERVER,
    *,
    server_selection_timeout_ms: int | None = None,
) -> tuple[dict[str, Any], DatabaseKey]:
    """Recreate ``database`` and mint a key for it over an admin connection.

    The admin connection is closed before returning, on every path.
    """
    admin = connect_admin(endpoint, server_selection_timeout_ms=server_selection_timeout_ms)
    try:
        info = await create_database(admin, database)
        key = await create_key(admin, database, role)
    finally:
        await admin.close()
        logger.info("Disconnected admin client")
    return info, key
