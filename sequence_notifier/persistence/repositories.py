"""Data access layer for customers and their sequences.

Repositories return domain models or plain row tuples, never ORM objects.
"""

import logging
from typing import Iterator, List, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sequence_notifier.domain.models import CustomerRecord

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import CustomerModel, SequenceModel

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def candidate_pattern(start_marker: str, end_marker: str) -> str:
    """LIKE pattern for sequences holding start, three characters, then end."""
    return f"%{escape_like(start_marker)}%___%{escape_like(end_marker)}%"


class CustomerRepository:
    """Repository for customer and sequence operations."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def add_customer_sequence(
        self, email: str, first_name: str, sequence: str
    ) -> CustomerRecord:
        """Store a sequence for a customer, creating the customer if needed.

        An existing customer (matched by email) gets its first name updated
        and the sequence appended after its existing ones.

        Args:
            email: Customer email address
            first_name: Customer first name
            sequence: Genetic sequence

        Returns:
            CustomerRecord for the stored sequence

        Raises:
            DataIntegrityError: On constraint violations
            PersistenceError: If a database error occurs
        """
        try:
            customer = self.session.execute(
                select(CustomerModel).where(CustomerModel.email == email)
            ).scalar_one_or_none()

            if customer is None:
                customer = CustomerModel(email=email, first_name=first_name)
                self.session.add(customer)
                self.session.flush()
                position = 0
            else:
                customer.first_name = first_name
                position = self.session.execute(
                    select(func.count(SequenceModel.dna_id)).where(
                        SequenceModel.customer_id == customer.customer_id
                    )
                ).scalar_one()

            self.session.add(
                SequenceModel(
                    customer_id=customer.customer_id,
                    sequence=sequence,
                    position=position,
                )
            )
            self.session.flush()

            return CustomerRecord(first_name=first_name, email=email, sequence=sequence)

        except IntegrityError as e:
            logger.error(f"Integrity error storing sequence for {email}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to store sequence due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error storing sequence for {email}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to store sequence: {e}") from e

    def get_by_email(self, email: str) -> List[CustomerRecord]:
        """All stored sequences of one customer, in insertion order.

        Raises:
            RecordNotFoundError: If no customer has this email
            PersistenceError: If a database error occurs
        """
        try:
            stmt = (
                select(CustomerModel.first_name, CustomerModel.email, SequenceModel.sequence)
                .join(SequenceModel, SequenceModel.customer_id == CustomerModel.customer_id)
                .where(CustomerModel.email == email)
                .order_by(SequenceModel.position)
            )
            records = [_to_record(row) for row in self.session.execute(stmt)]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving sequences for {email}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve sequences: {e}") from e

        if not records:
            raise RecordNotFoundError(f"Customer with email {email} not found")
        return records

    def get_all(self) -> List[CustomerRecord]:
        """Every stored sequence. Loads the full table; meant for small stores and tests.

        Raises:
            PersistenceError: If a database error occurs
        """
        try:
            stmt = (
                select(CustomerModel.first_name, CustomerModel.email, SequenceModel.sequence)
                .join(SequenceModel, SequenceModel.customer_id == CustomerModel.customer_id)
                .order_by(SequenceModel.dna_id)
            )
            return [_to_record(row) for row in self.session.execute(stmt)]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving all sequences: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve sequences: {e}") from e

    def count(self) -> int:
        """Number of stored sequences.

        Raises:
            PersistenceError: If a database error occurs
        """
        try:
            return self.session.execute(select(func.count(SequenceModel.dna_id))).scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count sequences: {e}") from e

    def iter_candidates(
        self,
        start_marker: Optional[str] = None,
        end_marker: Optional[str] = None,
        batch_size: int = 100,
    ) -> Iterator[Row]:
        """Stream (first_name, email, sequence) rows in storage order.

        When both markers are given, rows are narrowed with a LIKE pattern.
        The narrowing is coarse; callers must still match every row.
        Rows are fetched ``batch_size`` at a time and never materialized
        as a whole. Customer columns are None for orphaned sequences.

        Raises:
            SQLAlchemyError: If the query fails, also mid-iteration
        """
        stmt = candidate_query(start_marker, end_marker)
        result = self.session.execute(stmt.execution_options(yield_per=batch_size))
        try:
            for row in result:
                yield row
        finally:
            result.close()


def candidate_query(start_marker: Optional[str] = None, end_marker: Optional[str] = None) -> Select:
    """SELECT for iter_candidates, narrowed when both markers are given.

    Matching ignores case, so the pattern is compared with ILIKE (or
    lower() LIKE lower() where the backend has no ILIKE).
    """
    stmt = (
        select(
            CustomerModel.first_name.label("first_name"),
            CustomerModel.email.label("email"),
            SequenceModel.sequence.label("sequence"),
        )
        .select_from(SequenceModel)
        .outerjoin(CustomerModel, SequenceModel.customer_id == CustomerModel.customer_id)
        .order_by(SequenceModel.dna_id)
    )
    if start_marker and end_marker:
        stmt = stmt.where(
            SequenceModel.sequence.ilike(
                candidate_pattern(start_marker, end_marker), escape=LIKE_ESCAPE
            )
        )
    return stmt


def _to_record(row: Row) -> CustomerRecord:
    return CustomerRecord(first_name=row.first_name, email=row.email, sequence=row.sequence)
