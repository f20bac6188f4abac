"""Test helper utilities for Sequence Notifier tests."""

from .channels import RecordingChannel
from .fixture_records import FIXTURE_PATH, load_fixture_records

__all__ = ["RecordingChannel", "FIXTURE_PATH", "load_fixture_records"]
