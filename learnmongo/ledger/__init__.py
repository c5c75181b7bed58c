from learnmongo.ledger.customers import (
    count_transactions,
    create_customers,
    create_customers_with,
    create_schema,
    customer_data,
    read_all_customers,
    read_customer,
    read_customers,
    read_customers_between,
    read_customers_less_than,
    sum_balances,
)
from learnmongo.ledger.models import Customer, Transaction
from learnmongo.ledger.transfer import (
    INSUFFICIENT_FUNDS,
    TransferPlan,
    TransferResult,
    TransferStatus,
    pick_transfer,
    plan_transfer,
    random_transfer,
    transfer,
)

__all__ = [
    "Customer",
    "Transaction",
    "count_transactions",
    "create_customers",
    "create_customers_with",
    "create_schema",
    "customer_data",
    "read_all_customers",
    "read_customer",
    "read_customers",
    "read_customers_between",
    "read_customers_less_than",
    "sum_balances",
    "INSUFFICIENT_FUNDS",
    "TransferPlan",
    "TransferResult",
    "TransferStatus",
    "pick_transfer",
    "plan_transfer",
    "random_transfer",
    "transfer",
]
