"""Exception types raised by the board store."""


class BoardStoreError(Exception):
    """Base exception for board store errors."""

    pass


class SchemaViolationError(BoardStoreError, ValueError):
    """A record does not match its expected shape.

    Raised while committing a snapshot. Nothing is written when this
    is raised.
    """

    def __init__(self, collection: str, record_id: str, detail: str = "") -> None:
        self.collection = collection
        self.record_id = record_id
        self.detail = detail
        message = f"Invalid {collection} record: {record_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MigrationError(BoardStoreError):
    """Stored data cannot be brought to the current schema version."""

    pass


class StorageError(BoardStoreError):
    """The key-value substrate failed to read or write."""

    pass
