from learnmongo.admin import (
    DatabaseKey,
    KeyRole,
    create_database,
    create_key,
    delete_database,
    provision,
)
from learnmongo.config import LessonSettings
from learnmongo.core import (
    Document,
    IndexQuery,
    connect,
    connect_admin,
    connection,
    disconnect,
    get_client,
    get_database,
)
from learnmongo.fields import PyObjectId, Indexed, IndexSpec
from learnmongo.lifecycle import (
    QueryEvent,
    add_listener,
    disable_tracing,
    enable_tracing,
)
from learnmongo.utils import (
    LearnMongoError,
    DocumentNotFound,
    InvalidCursor,
    NotConnected,
    ProvisioningError,
    Cursor,
    Page,
    PaginationState,
    drain,
    iter_items,
    iter_pages,
    to_pretty_json,
)

__all__ = [
    # Admin
    "DatabaseKey",
    "KeyRole",
    "create_database",
    "create_key",
    "delete_database",
    "provision",
    "LessonSettings",
    # Core
    "Document",
    "IndexQuery",
    "connect",
    "connect_admin",
    "connection",
    "disconnect",
    "get_client",
    "get_database",
    # Fields
    "PyObjectId",
    "Indexed",
    "IndexSpec",
    # Lifecycle
    "QueryEvent",
    "add_listener",
    "disable_tracing",
    "enable_tracing",
    # Utils
    "LearnMongoError",
    "DocumentNotFound",
    "InvalidCursor",
    "NotConnected",
    "ProvisioningError",
    "Cursor",
    "Page",
    "PaginationState",
    "drain",
    "iter_items",
    "iter_pages",
    "to_pretty_json",
]
