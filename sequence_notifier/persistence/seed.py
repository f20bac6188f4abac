"""Seeding the record store with random customers."""

import random
from typing import Optional

from sequence_notifier.logging import get_logger
from sequence_notifier.utils.sequences import generate_letters, generate_nucleotides

from .repositories import CustomerRepository

logger = get_logger(__name__, component="database")

SEED_EMAIL_DOMAIN = "example.com"


def seed_customers(
    repo: CustomerRepository,
    rows: int = 50,
    sequence_length: int = 60,
    rng: Optional[random.Random] = None,
) -> int:
    """Insert ``rows`` random customers, one sequence each.

    Generated emails may collide; a collision appends a second sequence to
    the existing customer instead of creating a new one.

    Args:
        repo: Repository bound to the caller's session (caller commits)
        rows: Number of sequences to insert
        sequence_length: Length of each sequence
        rng: Random generator (seed it for reproducible data)

    Returns:
        Number of sequences inserted
    """
    rng = rng or random.Random()

    logger.info(
        "Begin seeding",
        extra={"event": "seed.started", "rows": rows, "sequence_length": sequence_length},
    )

    for _ in range(rows):
        repo.add_customer_sequence(
            email=f"{generate_letters(6, rng)}@{SEED_EMAIL_DOMAIN}",
            first_name=generate_letters(8, rng).capitalize(),
            sequence=generate_nucleotides(sequence_length, rng),
        )

    logger.info("Seed complete", extra={"event": "seed.completed", "rows": rows})
    return rows
