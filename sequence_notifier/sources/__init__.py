"""Record sources streaming customer sequences to the pipeline."""

from .base import RecordSource, SourceItem
from .exceptions import RecordSourceError, SourceError, SourceIterationError
from .memory import InMemoryRecordSource
from .sql import SQLRecordSource

__all__ = [
    "RecordSource",
    "SourceItem",
    "InMemoryRecordSource",
    "SQLRecordSource",
    "SourceError",
    "SourceIterationError",
    "RecordSourceError",
]
