"""Record source contract.

A record source streams customer records lazily and forward-only. Each call
to ``stream`` starts a fresh iteration. Markers passed to ``stream`` are a
narrowing hint only; consumers re-check every record with the matcher.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional

from sequence_notifier.domain.models import CustomerRecord

from .exceptions import SourceIterationError


@dataclass(frozen=True)
class SourceItem:
    """One position in a record stream: either a record or a retrieval error."""

    index: int
    record: Optional[CustomerRecord] = None
    error: Optional[SourceIterationError] = None

    def __post_init__(self):
        if (self.record is None) == (self.error is None):
            raise ValueError("SourceItem needs exactly one of record or error")

    @property
    def ok(self) -> bool:
        return self.record is not None


class RecordSource(ABC):
    """Base class for record sources."""

    @abstractmethod
    def stream(
        self, start_marker: Optional[str] = None, end_marker: Optional[str] = None
    ) -> Iterator[SourceItem]:
        """Yield every record, at most once, in storage order.

        Args:
            start_marker: Optional start marker the source may narrow on
            end_marker: Optional end marker the source may narrow on

        Yields:
            SourceItem per record; per-item failures carry a SourceIterationError

        Raises:
            RecordSourceError: If the underlying store fails
        """
        pass
