"""Conditional transfers between customer balances.

A transfer reads both customers, checks that the source would not go
negative, and only then writes the audit record and both new balances. The
reads and writes run in one MongoDB multi-document transaction, so the
server applies them together or not at all.
"""

from __future__ import annotations

import enum
import logging
import random
import uuid
from dataclasses import dataclass

from pymongo.asynchronous.client_session import AsyncClientSession

from learnmongo.core.connection import get_client
from learnmongo.ledger.models import Customer, Transaction
from learnmongo.utils.exceptions import DocumentNotFound

logger = logging.getLogger(__name__)

INSUFFICIENT_FUNDS = "Error. Insufficient funds."


class TransferStatus(str, enum.Enum):
    COMPLETED = "completed"
    INSUFFICIENT_FUNDS = "insufficient_funds"


@dataclass(frozen=True)
class TransferPlan:
    """Balances a transfer would leave behind."""

    amount: int
    new_source_balance: int
    new_dest_balance: int


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a transfer attempt.

    A rejected transfer is a normal result: ``transaction`` is None and the
    balances are the ones read, untouched.
    """

    status: TransferStatus
    source_id: int
    dest_id: int
    amount: int
    source_balance: int
    dest_balance: int
    transaction: Transaction | None = None

    @property
    def accepted(self) -> bool:
        return self.status is TransferStatus.COMPLETED

    @property
    def message(self) -> str:
        if self.accepted:
            return f"Transferred {self.amount} from {self.source_id} to {self.dest_id}"
        return INSUFFICIENT_FUNDS


def plan_transfer(source_balance: int, dest_balance: int, amount: int) -> TransferPlan | None:
    """Return the post-transfer balances, or None if the source would go negative."""
    new_source_balance = source_balance - amount
    if new_source_balance < 0:
        return None
    return TransferPlan(
        amount=amount,
        new_source_balance=new_source_balance,
        new_dest_balance=dest_balance + amount,
    )


def _check_arguments(source_id: int, dest_id: int, amount: int) -> None:
    if source_id == dest_id:
        raise ValueError("source and destination customers must differ")
    if amount <= 0:
        raise ValueError("amount must be > 0")


async def _load_customer(customer_id: int, session: AsyncClientSession) -> Customer:
    customer = await Customer.index("customer_by_id").match(customer_id).first(session=session)
    if customer is None:
        raise DocumentNotFound(f"Customer with id {customer_id} not found")
    return customer


async def transfer(
    source_id: int,
    dest_id: int,
    amount: int,
    *,
    transaction_uuid: str | None = None,
) -> TransferResult:
    """Move ``amount`` from one customer to another if funds allow.

    Requires a replica set or sharded cluster. Transaction and transport
    errors propagate; nothing is retried.

    Raises:
        ValueError: If the customers are the same or amount is not positive
        DocumentNotFound: If either customer does not exist
    """
    _check_arguments(source_id, dest_id, amount)
    client = get_client(Customer._connection_alias)

    async with client.start_session() as session:
        async with await session.start_transaction():
            source = await _load_customer(source_id, session)
            dest = await _load_customer(dest_id, session)

            plan = plan_transfer(source.balance, dest.balance, amount)
            if plan is None:
                await session.abort_transaction()
                logger.info(
                    "Rejected transfer of %d from customer %d to %d: balance %d",
                    amount,
                    source_id,
                    dest_id,
                    source.balance,
                )
                return TransferResult(
                    status=TransferStatus.INSUFFICIENT_FUNDS,
                    source_id=source_id,
                    dest_id=dest_id,
                    amount=amount,
                    source_balance=source.balance,
                    dest_balance=dest.balance,
                )

            record = await Transaction.create(
                uuid=transaction_uuid or str(uuid.uuid4()),
                source_customer=source.id,
                dest_customer=dest.id,
                amount=amount,
                session=session,
            )
            await source.update(balance=plan.new_source_balance, session=session)
            await dest.update(balance=plan.new_dest_balance, session=session)

    logger.debug("Transfer %s committed", record.uuid)
    return TransferResult(
        status=TransferStatus.COMPLETED,
        source_id=source_id,
        dest_id=dest_id,
        amount=amount,
        source_balance=plan.new_source_balance,
        dest_balance=plan.new_dest_balance,
        transaction=record,
    )


def pick_transfer(
    num_customers: int, max_amount: int, rng: random.Random | None = None
) -> tuple[int, int, int]:
    """Draw (source_id, dest_id, amount) with distinct ids in 1..num_customers."""
    if num_customers < 2:
        raise ValueError("need at least two customers")
    if max_amount < 1:
        raise ValueError("max_amount must be >= 1")
    rng = rng or random.Random()
    source_id = rng.randint(1, num_customers)
    dest_id = rng.randint(1, num_customers)
    while dest_id == source_id:
        dest_id = rng.randint(1, num_customers)
    return source_id, dest_id, rng.randint(1, max_amount)


async def random_transfer(
    num_customers: int,
    max_amount: int,
    *,
    rng: random.Random | None = None,
) -> TransferResult:
    """Transfer a random amount between two random customers."""
    source_id, dest_id, amount = pick_transfer(num_customers, max_amount, rng)
    return await transfer(source_id, dest_id, amount)
