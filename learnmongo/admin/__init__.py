from learnmongo.admin.provisioning import (
    DatabaseKey,
    KeyRole,
    create_database,
    create_key,
    database_exists,
    delete_database,
    provision,
)

__all__ = [
    "DatabaseKey",
    "KeyRole",
    "create_database",
    "create_key",
    "database_exists",
    "delete_database",
    "provision",
]
