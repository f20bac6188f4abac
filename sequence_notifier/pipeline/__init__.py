"""Pipeline orchestration for sequence matching and notification."""

from .models import PipelineRunResult, RecordOutcome, RecordStatus
from .runner import NotificationPipeline

__all__ = [
    "NotificationPipeline",
    "PipelineRunResult",
    "RecordOutcome",
    "RecordStatus",
]
