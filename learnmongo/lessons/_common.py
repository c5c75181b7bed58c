from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from pymongo.asynchronous.database import AsyncDatabase

from learnmongo.admin.provisioning import KeyRole, provision
from learnmongo.config import LessonSettings
from learnmongo.core.connection import connection
from learnmongo.utils.jsonfmt import to_pretty_json

logger = logging.getLogger("learnmongo.lessons")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def log_result(message: str, result: object, *args: object) -> None:
    """Log a progress line followed by the pretty-printed result."""
    logger.info(message + " :: \n%s", *args, to_pretty_json(result))


@asynccontextmanager
async def provisioned_database(settings: LessonSettings) -> AsyncIterator[AsyncDatabase]:
    """Recreate the lesson database, then connect to it with a server key.

    The key connection is registered as the default alias and closed on exit.
    """
    info, key = await provision(
        settings.endpoint,
        settings.database,
        KeyRole.SERVER,
        server_selection_timeout_ms=settings.server_selection_timeout_ms,
    )
    log_result("Created database: %s", info, settings.database)
    logger.info("DB %s key: %s", settings.database, key.redacted())

    async with connection(
        key.connection_uri(settings.endpoint),
        server_selection_timeout_ms=settings.server_selection_timeout_ms,
    ) as db:
        logger.info("Connected to %s as server", settings.database)
        yield db
    logger.info("Disconnected from %s as server", settings.database)
