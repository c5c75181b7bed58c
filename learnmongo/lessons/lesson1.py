"""Lesson 1: connect as admin, create a database, then delete it.

Run with: python -m learnmongo.lessons.lesson1
"""

import asyncio
import logging

from learnmongo.admin.provisioning import create_database, database_exists, delete_database
from learnmongo.config import LessonSettings
from learnmongo.core.connection import connect_admin
from learnmongo.lessons._common import configure_logging, log_result

logger = logging.getLogger("learnmongo.lessons.lesson1")

DATABASE = "TestDB"


async def main(settings: LessonSettings | None = None) -> None:
    settings = settings or LessonSettings.from_env(database=DATABASE)

    admin = connect_admin(
        settings.endpoint, server_selection_timeout_ms=settings.server_selection_timeout_ms
    )
    logger.info("Connected to MongoDB as admin")
    try:
        info = await create_database(admin, settings.database)
        log_result("Created database: %s", info, settings.database)

        existed = await delete_database(admin, settings.database)
        log_result(
            "Deleted database: %s",
            {"deleted": existed, "exists": await database_exists(admin, settings.database)},
            settings.database,
        )
    finally:
        await admin.close()
        logger.info("Disconnected from MongoDB as admin")


def run() -> None:
    configure_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
