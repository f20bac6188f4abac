"""Integration tests for complete notification runs.

Tests the workflow: SQLite store → SQLRecordSource → matching →
rendering → delivery channel, including a mocked SMTP server.
"""

import random
from unittest.mock import MagicMock, Mock

import pytest

from sequence_notifier.config.models import EmailConfig
from sequence_notifier.domain.models import NotificationRequest
from sequence_notifier.matching.engine import extract_matches
from sequence_notifier.notifications import (
    Credentials,
    InMemoryFailureQueue,
    MessageRenderer,
    NotificationService,
    SMTPChannel,
)
from sequence_notifier.persistence import (
    CustomerRepository,
    close_database,
    get_session,
    init_database,
    seed_customers,
)
from sequence_notifier.pipeline import NotificationPipeline, RecordStatus
from sequence_notifier.sources import SQLRecordSource
from tests.helpers import RecordingChannel, load_fixture_records

TEMPLATE = 'Hello {first_name}, we found that you have the sequence "{matches}".'


@pytest.fixture
def test_database(tmp_path):
    """Setup test database with file storage."""
    db_url = f"sqlite:///{tmp_path / 'notify.db'}"
    init_database(db_url)
    yield db_url
    close_database()


@pytest.fixture
def fixture_store(test_database):
    with get_session() as session:
        repo = CustomerRepository(session)
        for row in load_fixture_records():
            repo.add_customer_sequence(row["email"], row["first_name"], row["sequence"])
    return test_database


def build(channel, prefilter=True, dispatch_workers=1, credentials=None):
    service = NotificationService(
        channel,
        email_config=EmailConfig(max_retries=1, retry_initial_delay=0.0),
        failure_queue=InMemoryFailureQueue(),
        sleep=Mock(),
    )
    return NotificationPipeline(
        source=SQLRecordSource(batch_size=2, prefilter=prefilter),
        channel=channel,
        renderer=MessageRenderer("Kia Ora {{ first_name }}", sender="lab@example.com"),
        notification_service=service,
        credentials=credentials,
        dispatch_workers=dispatch_workers,
    )


class TestNotifyFromStore:
    """Runs over the customer fixtures."""

    def test_fixture_customers_notified(self, fixture_store):
        channel = RecordingChannel()

        result = build(channel).run(
            {"first_codon": "AAA", "final_codon": "GCC", "template": TEMPLATE}
        )

        assert channel.sent_to == ["hahn@example.com", "tane@example.com"]
        assert [m.body for m in channel.sent] == [
            'Hello Hahn, we found that you have the sequence "TTAAGA".',
            'Hello Tane, we found that you have the sequence "CCCTTT".',
        ]
        # Prefilter leaves only the candidates
        assert result.total_records == 2
        assert result.total_dispatched == 2

    def test_prefilter_off_reports_skips(self, fixture_store):
        channel = RecordingChannel()

        result = build(channel, prefilter=False).run(
            {"first_codon": "AAA", "final_codon": "GCC", "template": TEMPLATE}
        )

        assert channel.sent_to == ["hahn@example.com", "tane@example.com"]
        assert result.total_records == 4
        assert result.total_skipped == 2

    def test_lower_case_sequence_matches(self, test_database):
        with get_session() as session:
            CustomerRepository(session).add_customer_sequence(
                "hahn@example.com", "Hahn", "taaattaagagcctgg"
            )
        channel = RecordingChannel()

        build(channel).run({"first_codon": "AAA", "final_codon": "GCC", "template": "{matches}"})

        assert [m.body for m in channel.sent] == ["ttaaga"]

    def test_smtp_session_reused(self, fixture_store):
        """Test one login and one connection for the whole run."""
        smtp = MagicMock()
        smtp.send_message.return_value = {}
        factory = Mock(return_value=smtp)
        channel = SMTPChannel("smtp.example.com", 587, smtp_factory=factory)

        result = build(channel, credentials=Credentials(user="lab", password="secret")).run(
            NotificationRequest(start_marker="AAA", end_marker="GCC", message_template=TEMPLATE)
        )

        assert result.total_dispatched == 2
        factory.assert_called_once()
        smtp.login.assert_called_once_with("lab", "secret")
        assert smtp.send_message.call_count == 2
        smtp.quit.assert_called_once()
        sent = smtp.send_message.call_args_list[0][0][0]
        assert sent["To"] == "hahn@example.com"
        assert sent["Subject"] == "Kia Ora Hahn"

    def test_refused_recipient_isolated(self, fixture_store):
        smtp = MagicMock()
        smtp.send_message.side_effect = [
            {"hahn@example.com": (550, b"Mailbox unavailable")},
            {"hahn@example.com": (550, b"Mailbox unavailable")},
            {},
        ]
        channel = SMTPChannel("smtp.example.com", 587, smtp_factory=Mock(return_value=smtp))

        pipeline = build(channel)

        result = pipeline.run({"first_codon": "AAA", "final_codon": "GCC", "template": TEMPLATE})

        assert [o.status for o in result.outcomes] == [
            RecordStatus.DISPATCH_FAILED,
            RecordStatus.DISPATCHED,
        ]
        assert result.outcomes[0].attempts == 2
        assert len(pipeline.notification_service.failure_queue) == 1


class TestSeededStore:
    """Runs over randomly generated customers."""

    @pytest.fixture
    def seeded(self, test_database):
        with get_session() as session:
            seed_customers(
                CustomerRepository(session), rows=150, sequence_length=60, rng=random.Random(11)
            )
        return test_database

    def expected_recipients(self, start, end):
        with get_session() as session:
            records = CustomerRepository(session).get_all()
        return sorted(r.email for r in records if extract_matches(r.sequence, start, end))

    @pytest.mark.parametrize("markers", [("AT", "CG"), ("GGA", "TTC"), ("ACGT", "TGCA")])
    def test_prefilter_never_drops_a_match(self, seeded, markers):
        start, end = markers
        request = {"first_codon": start, "final_codon": end, "template": "{matches}"}
        filtered, unfiltered = RecordingChannel(), RecordingChannel()

        build(filtered, prefilter=True).run(request)
        build(unfiltered, prefilter=False).run(request)

        assert sorted(filtered.sent_to) == sorted(unfiltered.sent_to)
        assert sorted(filtered.sent_to) == self.expected_recipients(start, end)

    def test_parallel_dispatch_matches_sequential(self, seeded):
        request = {"first_codon": "AT", "final_codon": "CG", "template": "{matches}"}
        sequential, parallel = RecordingChannel(), RecordingChannel()

        first = build(sequential).run(request)
        second = build(parallel, dispatch_workers=4).run(request)

        assert [(o.index, o.status, o.matches) for o in first.outcomes] == [
            (o.index, o.status, o.matches) for o in second.outcomes
        ]
        assert sorted(m.body for m in sequential.sent) == sorted(m.body for m in parallel.sent)
