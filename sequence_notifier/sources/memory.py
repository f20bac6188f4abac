"""Record source backed by a list held in memory."""

from typing import Any, Iterable, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError

from sequence_notifier.domain.models import CustomerRecord
from sequence_notifier.logging import get_logger

from .base import RecordSource, SourceItem
from .exceptions import SourceIterationError

logger = get_logger(__name__, component="source")

RecordLike = Union[CustomerRecord, Mapping[str, Any]]


class InMemoryRecordSource(RecordSource):
    """Streams a fixed list of records or raw mappings.

    Raw mappings are validated into CustomerRecord on the way out; one that
    fails validation becomes an error item and the stream continues.
    """

    def __init__(self, records: Iterable[RecordLike]):
        self._records: List[RecordLike] = list(records)

    def __len__(self) -> int:
        return len(self._records)

    def stream(
        self, start_marker: Optional[str] = None, end_marker: Optional[str] = None
    ) -> Iterator[SourceItem]:
        for index, raw in enumerate(self._records):
            if isinstance(raw, CustomerRecord):
                yield SourceItem(index=index, record=raw)
                continue
            try:
                yield SourceItem(index=index, record=CustomerRecord.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    f"Invalid record at position {index}",
                    extra={"event": "source.item.invalid", "record_index": index},
                )
                yield SourceItem(
                    index=index,
                    error=SourceIterationError(f"Invalid record: {e}", index=index),
                )
