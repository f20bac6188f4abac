"""Marker-bounded sequence matching.

- extract_matches: pure extraction over one sequence
- SequenceMatcher: per-record facade used by the pipeline
- MatchSet: ordered matches of one record
"""

from .engine import MIN_RUN_LENGTH, SequenceMatcher, extract_matches
from .models import MatchSet

__all__ = [
    "MIN_RUN_LENGTH",
    "MatchSet",
    "SequenceMatcher",
    "extract_matches",
]
