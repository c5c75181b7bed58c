from learnmongo.core.connection import (
    connect,
    connect_admin,
    connection,
    disconnect,
    get_client,
    get_database,
)
from learnmongo.core.document import Document
from learnmongo.core.query import IndexQuery

__all__ = [
    "Document",
    "IndexQuery",
    "connect",
    "connect_admin",
    "connection",
    "disconnect",
    "get_client",
    "get_database",
]
