"""Lesson 2: provision a database and key, then create, read, update and
delete a single customer.

Run with: python -m learnmongo.lessons.lesson2
"""

import asyncio
import logging

from learnmongo.config import LessonSettings
from learnmongo.ledger.customers import create_schema, customer_data, read_customer
from learnmongo.ledger.models import Customer
from learnmongo.lessons._common import configure_logging, log_result, provisioned_database

logger = logging.getLogger("learnmongo.lessons.lesson2")


async def main(settings: LessonSettings | None = None) -> None:
    settings = settings or LessonSettings.from_env()

    async with provisioned_database(settings):
        schema = await create_schema(Customer, indexes=["customer_by_id"])
        log_result("Created customers collection", schema)

        customer = await Customer.create(id=0, balance=100)
        log_result("Create customer %d", customer, customer.id)

        customer = await read_customer(0)
        log_result("Read customer %d", customer_data(customer), customer.id)

        customer.balance = 200
        await customer.save()
        log_result("Update customer %d", customer, customer.id)

        customer = await read_customer(0)
        log_result("Read customer %d", customer_data(customer), customer.id)

        await customer.delete()
        log_result("Delete customer %d", customer, customer.id)


def run() -> None:
    configure_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
