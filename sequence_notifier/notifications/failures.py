"""Hook for messages whose delivery failed.

The pipeline hands every finally-failed message to a FailureQueue. Retrying
them later is up to whoever consumes the queue.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from sequence_notifier.domain.models import RenderedMessage
from sequence_notifier.logging import get_logger
from sequence_notifier.utils.timestamps import utc_now

logger = get_logger(__name__, component="delivery")


@dataclass(frozen=True)
class FailedDispatch:
    """A message that could not be delivered, with the last error seen."""

    message: RenderedMessage
    error: str
    attempts: int
    failed_at: datetime = field(default_factory=utc_now)


class FailureQueue(ABC):
    """Destination for failed dispatches."""

    @abstractmethod
    def enqueue(self, failure: FailedDispatch) -> None:
        """Record a failed dispatch. Must not raise for a well-formed entry."""


class InMemoryFailureQueue(FailureQueue):
    """Keeps failed dispatches in memory for the lifetime of the process."""

    def __init__(self):
        self._items: List[FailedDispatch] = []
        self._lock = threading.Lock()

    def enqueue(self, failure: FailedDispatch) -> None:
        with self._lock:
            self._items.append(failure)
        logger.warning(
            f"Queued failed notification for {failure.message.recipient_email}",
            extra={
                "event": "delivery.failure.queued",
                "recipient": failure.message.recipient_email,
                "attempts": failure.attempts,
            },
        )

    def drain(self) -> List[FailedDispatch]:
        """Remove and return every queued failure."""
        with self._lock:
            items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
