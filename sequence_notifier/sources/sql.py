"""Record source streaming customer sequences from the database."""

from contextlib import closing
from typing import Iterator, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from sequence_notifier.domain.models import CustomerRecord
from sequence_notifier.logging import get_logger
from sequence_notifier.persistence.database import get_session
from sequence_notifier.persistence.exceptions import PersistenceError
from sequence_notifier.persistence.repositories import CustomerRepository

from .base import RecordSource, SourceItem
from .exceptions import RecordSourceError, SourceIterationError

logger = get_logger(__name__, component="source")


class SQLRecordSource(RecordSource):
    """Streams the customers/dna join in batches.

    The session is opened when iteration starts and closed when the
    iterator is exhausted or closed early.

    Attributes:
        batch_size: Rows fetched per round trip
        prefilter: Narrow rows with a LIKE pattern when markers are given
    """

    def __init__(self, batch_size: int = 100, prefilter: bool = True):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got: {batch_size}")
        self.batch_size = batch_size
        self.prefilter = prefilter

    def stream(
        self, start_marker: Optional[str] = None, end_marker: Optional[str] = None
    ) -> Iterator[SourceItem]:
        if not self.prefilter:
            start_marker = end_marker = None

        logger.debug(
            "Streaming records",
            extra={
                "event": "source.stream.started",
                "batch_size": self.batch_size,
                "prefiltered": bool(start_marker and end_marker),
            },
        )

        index = -1
        try:
            with get_session() as session:
                rows = CustomerRepository(session).iter_candidates(
                    start_marker, end_marker, batch_size=self.batch_size
                )
                with closing(rows):
                    for index, row in enumerate(rows):
                        yield self._to_item(index, row)
        except (SQLAlchemyError, PersistenceError) as e:
            logger.error(
                f"Record store failed: {e}",
                extra={"event": "source.stream.failed", "record_index": index},
            )
            raise RecordSourceError(f"Record store failed after item {index}: {e}") from e

        logger.debug(
            "Record stream exhausted",
            extra={"event": "source.stream.completed", "count": index + 1},
        )

    @staticmethod
    def _to_item(index: int, row) -> SourceItem:
        try:
            record = CustomerRecord(
                first_name=row.first_name, email=row.email, sequence=row.sequence
            )
        except ValidationError as e:
            logger.warning(
                f"Unreadable row at position {index}",
                extra={"event": "source.item.invalid", "record_index": index},
            )
            return SourceItem(
                index=index,
                error=SourceIterationError(f"Unreadable row: {e}", index=index),
            )
        return SourceItem(index=index, record=record)
