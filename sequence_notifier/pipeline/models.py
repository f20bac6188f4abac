"""Data models for notification run tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class RecordStatus(str, Enum):
    """Terminal state of one record within a run."""

    SKIPPED = "skipped"
    DISPATCHED = "dispatched"
    DISPATCH_FAILED = "dispatch_failed"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class RecordOutcome:
    """
    What happened to one record from the source.

    Attributes:
        index: Position of the record in the source stream
        email: Recipient email (None when the record could not be fetched)
        status: Terminal state of the record
        matches: Extracted sub-sequences (empty unless matched)
        attempts: Send attempts made (0 when nothing was sent)
        error: Error message for failed records
    """

    index: int
    email: Optional[str]
    status: RecordStatus
    matches: Tuple[str, ...] = ()
    attempts: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status in (RecordStatus.DISPATCH_FAILED, RecordStatus.FETCH_FAILED)


@dataclass
class PipelineRunResult:
    """
    Aggregate results from one notification run.

    Attributes:
        run_id: Identifier shared by every log line of the run
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        outcomes: Per-record outcomes in source order
        cancelled: Whether the run stopped early on cancellation or timeout
        total_duration_seconds: Total time for the entire run
        total_records: Records pulled from the source
        total_skipped: Records without a match
        total_dispatched: Messages delivered
        total_dispatch_failed: Matched records whose message was not delivered
        total_fetch_failed: Records the source could not produce
    """

    run_id: str
    run_started_at: datetime
    run_finished_at: datetime
    outcomes: List[RecordOutcome] = field(default_factory=list)
    cancelled: bool = False
    total_duration_seconds: float = 0.0
    total_records: int = 0
    total_skipped: int = 0
    total_dispatched: int = 0
    total_dispatch_failed: int = 0
    total_fetch_failed: int = 0

    def __post_init__(self):
        """Compute counters from the outcomes and the duration from the timestamps."""
        if self.outcomes and self.total_records == 0:
            self.total_records = len(self.outcomes)
            self.total_skipped = self._count(RecordStatus.SKIPPED)
            self.total_dispatched = self._count(RecordStatus.DISPATCHED)
            self.total_dispatch_failed = self._count(RecordStatus.DISPATCH_FAILED)
            self.total_fetch_failed = self._count(RecordStatus.FETCH_FAILED)

        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()

    def _count(self, status: RecordStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def had_errors(self) -> bool:
        return self.total_dispatch_failed > 0 or self.total_fetch_failed > 0
