from learnmongo.utils.exceptions import (
    LearnMongoError,
    DocumentNotFound,
    InvalidCursor,
    NotConnected,
    ProvisioningError,
)
from learnmongo.utils.jsonfmt import to_pretty_json
from learnmongo.utils.pagination import (
    Cursor,
    FetchPage,
    Page,
    PaginationState,
    drain,
    iter_items,
    iter_pages,
)
from learnmongo.utils.types import (
    DocumentData,
    DocumentRef,
    FilterSpec,
    SortSpec,
    merge_filters,
)

__all__ = [
    "LearnMongoError",
    "DocumentNotFound",
    "InvalidCursor",
    "NotConnected",
    "ProvisioningError",
    "to_pretty_json",
    "Cursor",
    "FetchPage",
    "Page",
    "PaginationState",
    "drain",
    "iter_items",
    "iter_pages",
    "DocumentData",
    "DocumentRef",
    "FilterSpec",
    "SortSpec",
    "merge_filters",
]
