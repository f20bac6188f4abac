"""Fixture-based customer records for testing.

Loads customer rows from a YAML fixture so integration tests work over a
small, known data set instead of seeded random data.
"""

from pathlib import Path
from typing import Any, Dict, List

import yaml

FIXTURE_PATH = Path(__file__).parent.parent / "fixtures" / "customers.yaml"


def load_fixture_records(fixture_path: Path = FIXTURE_PATH) -> List[Dict[str, Any]]:
    """Load customer rows from a YAML fixture file.

    Args:
        fixture_path: Path to YAML file with a top-level ``customers`` list

    Returns:
        List of dicts with first_name, email and sequence keys

    Raises:
        FileNotFoundError: If fixture file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture file not found: {fixture_path}")

    with open(fixture_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return data.get("customers", [])
