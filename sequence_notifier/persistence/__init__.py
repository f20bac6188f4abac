"""Persistence layer for the customer sequence store.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository and seeding
    - CustomerRepository: customers and their sequences
    - seed_customers(repo, rows, sequence_length) -> int

    # Exceptions
    - PersistenceError, DatabaseConnectionError, RecordNotFoundError, DataIntegrityError

Example usage:
    >>> from sequence_notifier.persistence import init_database, get_session, CustomerRepository
    >>> init_database("sqlite:///./data/sequence_notifier.db")
    >>> with get_session() as session:
    ...     CustomerRepository(session).add_customer_sequence(
    ...         "hahn@example.com", "Hahn", "TAAATTAAGAGCC"
    ...     )
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import CustomerRepository, candidate_pattern, candidate_query, escape_like
from .seed import seed_customers

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "CustomerRepository",
    "candidate_pattern",
    "candidate_query",
    "escape_like",
    "seed_customers",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
