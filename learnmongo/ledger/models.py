from __future__ import annotations

from pydantic import Field
from pymongo import ASCENDING

from learnmongo.core.document import Document
from learnmongo.fields.indexed import Indexed, IndexSpec


class Customer(Document):
    """An account holder and its current balance.

    ``customer_by_id`` serves point lookups on ``id``. ``customer_id_filter``
    covers (id, _id) and serves ordered range reads and paging.
    """

    id: int = Indexed(unique=True, name="customer_by_id")
    balance: int

    class Settings:
        collection = "customers"
        indexes = [
            IndexSpec(
                fields=[("id", ASCENDING), ("_id", ASCENDING)],
                unique=True,
                name="customer_id_filter",
            )
        ]


class Transaction(Document):
    """Audit record written by every accepted transfer."""

    uuid: str = Indexed(unique=True, name="transactions_by_uuid")
    source_customer: int = Field(alias="sourceCust")
    dest_customer: int = Field(alias="destCust")
    amount: int = Field(gt=0)

    class Settings:
        collection = "transactions"
