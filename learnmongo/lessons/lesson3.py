"""Lesson 3: index lookups, range queries and cursor pagination.

Twenty customers are created with ids 1..20 and a balance of ten times their
id, then read back through both customer indexes.

Run with: python -m learnmongo.lessons.lesson3
"""

import asyncio
import logging

from learnmongo.config import LessonSettings
from learnmongo.ledger.customers import (
    create_customers_with,
    create_schema,
    customer_data,
    read_all_customers,
    read_customer,
    read_customers,
    read_customers_between,
    read_customers_less_than,
)
from learnmongo.ledger.models import Customer
from learnmongo.lessons._common import configure_logging, log_result, provisioned_database
from learnmongo.utils.pagination import Page

logger = logging.getLogger("learnmongo.lessons.lesson3")

NUM_CUSTOMERS = 20


def log_page(page: Page[Customer]) -> None:
    log_result("Page results", [customer_data(customer) for customer in page.items])
    if page.after is not None:
        logger.info("After: %s", page.after)


async def main(settings: LessonSettings | None = None) -> None:
    settings = settings or LessonSettings.from_env()

    async with provisioned_database(settings):
        schema = await create_schema(Customer)
        log_result("Created customers collection and indexes", schema)

        await create_customers_with(
            range(1, NUM_CUSTOMERS + 1), lambda customer_id: customer_id * 10
        )

        customer = await read_customer(1)
        log_result("Read customer %d", customer_data(customer), 1)

        page = await read_customers([1, 3, 7])
        log_result("Page results", [customer_data(c) for c in page.items])

        page = await read_customers([1, 3, 6, 7])
        log_result("Page results", [customer_data(c) for c in page.items])

        page = await read_customers_less_than(5)
        log_result("Query for ids < %d", [customer_data(c) for c in page.items], 5)

        page = await read_customers_between(5, 11)
        log_result("Query for ids >= %d and < %d", [customer_data(c) for c in page.items], 5, 11)

        state = await read_all_customers(settings.page_size, log_page)
        logger.info("Read %d customers in %d pages", len(state.items), state.fetches)


def run() -> None:
    configure_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
