from __future__ import annotations

import os
from dataclasses import dataclass, replace

DEFAULT_ENDPOINT = "mongodb://127.0.0.1:27017"
DEFAULT_DATABASE = "LedgerExample"


@dataclass(frozen=True)
class LessonSettings:
    """Where a lesson runs and how big its demo data is."""

    endpoint: str = DEFAULT_ENDPOINT
    database: str = DEFAULT_DATABASE
    server_selection_timeout_ms: int = 5000
    page_size: int = 8
    num_customers: int = 50
    initial_balance: int = 100
    num_transfers: int = 100
    max_transfer_amount: int = 10

    @classmethod
    def from_env(cls, **defaults) -> LessonSettings:
        """Defaults overridden by LEARNMONGO_ENDPOINT / LEARNMONGO_DATABASE."""
        settings = cls(**defaults)
        overrides = {}
        if endpoint := os.environ.get("LEARNMONGO_ENDPOINT"):
            overrides["endpoint"] = endpoint
        if database := os.environ.get("LEARNMONGO_DATABASE"):
            overrides["database"] = database
        return replace(settings, **overrides)
