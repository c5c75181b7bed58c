class LearnMongoError(Exception):
    """Base exception for all learnmongo errors."""


class DocumentNotFound(LearnMongoError):
    """Raised when a document is not found in the database."""


class NotConnected(LearnMongoError):
    """Raised when attempting to use a database that is not connected."""


class InvalidCursor(LearnMongoError):
    """Raised when a pagination cursor cannot be decoded for a query."""


class ProvisioningError(LearnMongoError):
    """Raised when a database or access key cannot be provisioned."""
