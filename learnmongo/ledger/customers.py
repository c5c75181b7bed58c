from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Iterable

from learnmongo.core.document import Document
from learnmongo.ledger.models import Customer, Transaction
from learnmongo.utils.exceptions import DocumentNotFound
from learnmongo.utils.pagination import Page, PaginationState, iter_pages
from learnmongo.utils.types import DocumentRef

logger = logging.getLogger(__name__)


def customer_data(customer: Customer) -> dict[str, int]:
    """The ``{id, balance}`` view of a customer used in lesson output."""
    return {"id": customer.id, "balance": customer.balance}


async def create_schema(*documents: type[Document], indexes: Iterable[str] | None = None) -> dict:
    """Create collections and their indexes.

    With ``indexes``, only the named indexes are created, on whichever of
    ``documents`` declares them.
    """
    wanted = set(indexes) if indexes is not None else None
    collections = [await document.create_collection() for document in documents]
    created: list[str] = []
    for document in documents:
        for name in document.index_specs():
            if wanted is None or name in wanted:
                created.append(await document.ensure_index(name))
    if wanted is not None and wanted - set(created):
        raise KeyError(f"No document declares indexes: {sorted(wanted - set(created))}")
    return {"collections": collections, "indexes": created}


async def create_customers(count: int, balance: int) -> list[Customer]:
    """Create customers with ids 1..count, all with the same balance."""
    return await create_customers_with(range(1, count + 1), lambda _id: balance)


async def create_customers_with(
    ids: Iterable[int], balance_for: Callable[[int], int]
) -> list[Customer]:
    customers = await Customer.insert_many(
        Customer(id=customer_id, balance=balance_for(customer_id)) for customer_id in ids
    )
    logger.info("Created %d customers", len(customers))
    return customers


async def read_customer(customer_id: int) -> Customer:
    """Point lookup on the ``customer_by_id`` index."""
    customer = await Customer.index("customer_by_id").match(customer_id).first()
    if customer is None:
        raise DocumentNotFound(f"Customer with id {customer_id} not found")
    return customer


async def read_customers(ids: Iterable[int], *, size: int = 64) -> Page[Customer]:
    """One page of the union of several id lookups, in id order."""
    return await Customer.index("customer_by_id").match(*ids).fetch_page(size=size)


async def read_customers_less_than(max_id: int, *, size: int = 64) -> Page[Customer]:
    return await Customer.index("customer_id_filter").range(lt=max_id).fetch_page(size=size)


async def read_customers_between(min_id: int, max_id: int, *, size: int = 64) -> Page[Customer]:
    """Customers with ``min_id <= id < max_id``."""
    return await (
        Customer.index("customer_id_filter").range(gte=min_id, lt=max_id).fetch_page(size=size)
    )


async def read_all_customers(
    page_size: int,
    on_page: Callable[[Page[Customer]], Awaitable[None] | None] | None = None,
) -> PaginationState:
    """Page through every customer, calling ``on_page`` for each fetched page.

    Returns the folded state; its items are ``{id, balance}`` dicts.
    """
    query = Customer.index("customer_id_filter")
    state = PaginationState()
    async for page in iter_pages(query.fetch_page, page_size):
        if on_page is not None:
            result = on_page(page)
            if inspect.isawaitable(result):
                await result
        state = state.advance(page, customer_data)
    return state


async def sum_balances(refs: Iterable[DocumentRef]) -> int:
    """Total balance of the customers behind ``refs``."""
    customers = await Customer.get_many(refs)
    total = sum(customer.balance for customer in customers)
    logger.info("Customer balance sum: %d", total)
    return total


async def count_transactions() -> int:
    return await Transaction.index("transactions_by_uuid").count()
