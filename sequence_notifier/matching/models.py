"""Data models for the matching engine."""

from dataclasses import dataclass
from typing import Iterator, Tuple


@dataclass(frozen=True)
class MatchSet:
    """Ordered sub-sequences extracted from one record.

    Only built for records with at least one match; a record without
    matches yields no MatchSet at all.

    Attributes:
        matches: Extracted runs in order of appearance
    """

    matches: Tuple[str, ...]

    def __iter__(self) -> Iterator[str]:
        return iter(self.matches)

    def __len__(self) -> int:
        return len(self.matches)

    def as_list(self) -> list:
        return list(self.matches)
