"""Marker-bounded sub-sequence extraction.

A match is a run of at least MIN_RUN_LENGTH characters that directly follows
an occurrence of the start marker, contains no position where the start
marker begins, and is directly followed by the end marker. Markers are
compared case-insensitively and treated as literal text.
"""

import logging
from typing import List, Optional

from sequence_notifier.domain.exceptions import InputValidationError
from sequence_notifier.domain.models import CustomerRecord

from .models import MatchSet

logger = logging.getLogger(__name__)

MIN_RUN_LENGTH = 3


def _fold(text: str) -> str:
    # Per-character lowering keeps indices aligned with the original text.
    return "".join(ch if len(ch.lower()) != 1 else ch.lower() for ch in text)


def extract_matches(sequence: str, start_marker: str, end_marker: str) -> List[str]:
    """Extract every non-overlapping marker-bounded run from ``sequence``.

    For each start-marker occurrence the shortest valid run is taken: the
    first end-marker occurrence at least MIN_RUN_LENGTH characters past the
    start marker that does not lie beyond the next start-marker occurrence.
    After a match, scanning resumes right after the matched end marker.

    Args:
        sequence: Sequence to scan
        start_marker: Literal start marker (non-empty)
        end_marker: Literal end marker (non-empty)

    Returns:
        Captured runs in order of appearance, with their original casing.
        Empty if nothing matched.

    Raises:
        InputValidationError: If either marker is empty
    """
    if not start_marker or not end_marker:
        raise InputValidationError("Markers must be non-empty strings")

    haystack = _fold(sequence)
    start = _fold(start_marker)
    end = _fold(end_marker)

    matches: List[str] = []
    position = 0

    start_at = haystack.find(start, position)
    while start_at != -1:
        run_begin = start_at + len(start)
        next_start = haystack.find(start, run_begin)
        end_at = haystack.find(end, run_begin + MIN_RUN_LENGTH)

        if end_at != -1 and (next_start == -1 or end_at <= next_start):
            matches.append(sequence[run_begin:end_at])
            position = end_at + len(end)
        else:
            position = start_at + 1

        start_at = haystack.find(start, position)

    return matches


class SequenceMatcher:
    """Evaluates customer records against one pair of markers."""

    def __init__(
        self,
        start_marker: str,
        end_marker: str,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize SequenceMatcher.

        Args:
            start_marker: Literal start marker
            end_marker: Literal end marker
            logger_instance: Optional logger instance (defaults to module logger)

        Raises:
            InputValidationError: If either marker is empty
        """
        if not start_marker or not end_marker:
            raise InputValidationError("Markers must be non-empty strings")
        self.start_marker = start_marker
        self.end_marker = end_marker
        self.logger = logger_instance or logger

    def evaluate(self, record: CustomerRecord) -> Optional[MatchSet]:
        """Match one record.

        Returns:
            MatchSet with at least one entry, or None when the record carries
            no marker-bounded run and should be skipped
        """
        matches = extract_matches(record.sequence, self.start_marker, self.end_marker)

        if not matches:
            self.logger.debug(
                "Record did not match",
                extra={"event": "matching.skip", "sequence_length": len(record.sequence)},
            )
            return None

        self.logger.debug(
            f"Record matched {len(matches)} sequence(s)",
            extra={"event": "matching.match", "match_count": len(matches)},
        )
        return MatchSet(tuple(matches))
