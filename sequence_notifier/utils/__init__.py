"""Shared utilities."""

from .sequences import NUCLEOTIDES, generate_letters, generate_nucleotides
from .timestamps import ensure_utc, format_timestamp, utc_now

__all__ = [
    "NUCLEOTIDES",
    "generate_letters",
    "generate_nucleotides",
    "ensure_utc",
    "format_timestamp",
    "utc_now",
]
