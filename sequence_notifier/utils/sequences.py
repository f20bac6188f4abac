"""Random data generators used for seeding the record store."""

import random
import string
from typing import Optional

NUCLEOTIDES = "ATCG"


def generate_nucleotides(size: int, rng: Optional[random.Random] = None) -> str:
    """Random nucleotide string of ``size`` characters.

    Example:
        >>> len(generate_nucleotides(60))
        60
    """
    rng = rng or random
    return "".join(rng.choice(NUCLEOTIDES) for _ in range(size))


def generate_letters(size: int, rng: Optional[random.Random] = None) -> str:
    """Random lowercase ASCII letters, used for fake names and mailboxes."""
    rng = rng or random
    return "".join(rng.choice(string.ascii_lowercase) for _ in range(size))
