"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the database cannot be initialized or reached.

    Examples:
    - Invalid database URL
    - Database file not accessible
    - Database used before init_database()
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an operation requires a record that does not exist."""

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations (unique email, foreign keys)."""

    pass
