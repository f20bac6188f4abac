"""Integration tests for persistence layer end-to-end workflows."""

import random

import pytest

from sequence_notifier.persistence import (
    CustomerRepository,
    close_database,
    get_session,
    init_database,
    seed_customers,
)
from sequence_notifier.sources import SQLRecordSource


@pytest.fixture
def test_database(tmp_path):
    """Setup test database with file storage."""
    db_file = tmp_path / "test_integration.db"
    db_url = f"sqlite:///{db_file}"
    init_database(db_url)
    yield db_url
    close_database()


class TestEndToEndPersistence:
    """Test end-to-end customer persistence workflows."""

    def test_data_survives_reconnect(self, test_database):
        """Test seed → close → reopen → stream returns the same rows."""
        with get_session() as session:
            seed_customers(CustomerRepository(session), rows=20, rng=random.Random(5))
            stored = [r.sequence for r in CustomerRepository(session).get_all()]

        close_database()
        init_database(test_database)

        streamed = [item.record.sequence for item in SQLRecordSource(batch_size=3).stream()]

        assert streamed == stored
        assert len(streamed) == 20

    def test_init_is_idempotent(self, test_database):
        """Test that re-running init keeps existing rows."""
        with get_session() as session:
            CustomerRepository(session).add_customer_sequence("hahn@example.com", "Hahn", "AAA")

        init_database(test_database)

        with get_session() as session:
            assert CustomerRepository(session).count() == 1

    def test_stream_sees_committed_rows_only(self, test_database):
        """Test that a rolled back insert never reaches the source."""
        with pytest.raises(RuntimeError):
            with get_session() as session:
                CustomerRepository(session).add_customer_sequence(
                    "hahn@example.com", "Hahn", "AAATTTGCC"
                )
                raise RuntimeError("abort")

        assert list(SQLRecordSource().stream("AAA", "GCC")) == []
