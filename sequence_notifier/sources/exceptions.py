"""Custom exceptions for record sources."""

from typing import Optional


class SourceError(Exception):
    """Base exception for all record source errors."""

    pass


class SourceIterationError(SourceError):
    """One record could not be retrieved from the source.

    Yielded inside a SourceItem rather than raised, so the stream continues
    with the next record.
    """

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        """Initialize with the position of the failed item.

        Args:
            message: Human-readable error message
            index: Zero-based position of the item in the stream
        """
        super().__init__(message)
        self.index = index


class RecordSourceError(SourceError):
    """The underlying store is unusable.

    Raised from the iterator; fatal for the invocation.
    """

    pass
