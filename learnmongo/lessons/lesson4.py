"""Lesson 4: a small ledger with conditional transfers.

Fifty customers start with the same balance. One hundred random transfers
move money between them inside MongoDB transactions; transfers that would
overdraw the source are rejected. The total balance never changes.

Needs a replica set (transactions). Run with:
    python -m learnmongo.lessons.lesson4
"""

import asyncio
import logging
from collections import Counter

from learnmongo.config import LessonSettings
from learnmongo.ledger.customers import (
    count_transactions,
    create_customers,
    create_schema,
    sum_balances,
)
from learnmongo.ledger.models import Customer, Transaction
from learnmongo.ledger.transfer import random_transfer
from learnmongo.lessons._common import configure_logging, log_result, provisioned_database

logger = logging.getLogger("learnmongo.lessons.lesson4")


async def main(settings: LessonSettings | None = None) -> dict[str, int]:
    settings = settings or LessonSettings.from_env()

    async with provisioned_database(settings):
        schema = await create_schema(
            Customer, Transaction, indexes=["customer_by_id", "transactions_by_uuid"]
        )
        log_result("Created customers & transactions collections", schema)

        customers = await create_customers(settings.num_customers, settings.initial_balance)
        logger.info(
            "Created %d new customers with balance: %d",
            settings.num_customers,
            settings.initial_balance,
        )
        refs = [customer.ref for customer in customers]

        before = await sum_balances(refs)

        outcomes: Counter[str] = Counter()
        for _ in range(settings.num_transfers):
            result = await random_transfer(settings.num_customers, settings.max_transfer_amount)
            outcomes[result.status.value] += 1

        after = await sum_balances(refs)
        summary = {
            "balance_before": before,
            "balance_after": after,
            "transactions": await count_transactions(),
            **outcomes,
        }
        log_result("Ledger summary", summary)
        return summary


def run() -> None:
    configure_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
