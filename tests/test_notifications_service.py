"""Unit tests for the notification service.

Tests NotificationService for:
- Successful single-attempt delivery
- Retry with exponential backoff on DispatchError
- Failure queueing after the last attempt
- Retry delay calculation and cap
"""

from unittest.mock import Mock

import pytest

from sequence_notifier.config.models import EmailConfig
from sequence_notifier.domain.models import RenderedMessage
from sequence_notifier.notifications import (
    DispatchError,
    InMemoryFailureQueue,
    NotificationService,
)
from sequence_notifier.notifications.models import DeliveryReceipt
from tests.helpers import RecordingChannel


@pytest.fixture
def message():
    """A rendered message."""
    return RenderedMessage(
        recipient_email="hahn@example.com",
        sender="hahn@example.com",
        subject="Kia Ora! Sequence results enclosed.",
        body='Hello Hahn, we found that you have the sequence "TTAAGA".',
    )


@pytest.fixture
def email_config():
    """Retry settings with two retries."""
    return EmailConfig(max_retries=2, retry_initial_delay=1.0, retry_backoff_multiplier=2.0)


def test_dispatch_success_first_attempt(message, email_config):
    """Test delivery without retries."""
    channel = RecordingChannel()
    sleep = Mock()
    service = NotificationService(channel, email_config=email_config, sleep=sleep)

    result = service.dispatch(message)

    assert result.sent is True
    assert result.attempts == 1
    assert result.error is None
    assert result.receipt.recipient == "hahn@example.com"
    assert channel.sent_to == ["hahn@example.com"]
    sleep.assert_not_called()


def test_dispatch_retries_then_succeeds(message, email_config):
    """Test that a transient failure is retried."""
    channel = RecordingChannel(fail_for=["hahn@example.com"], fail_times=1)
    sleep = Mock()
    queue = InMemoryFailureQueue()
    service = NotificationService(channel, email_config=email_config, failure_queue=queue, sleep=sleep)

    result = service.dispatch(message)

    assert result.sent is True
    assert result.attempts == 2
    assert channel.attempts == ["hahn@example.com", "hahn@example.com"]
    sleep.assert_called_once_with(1.0)
    assert len(queue) == 0


def test_dispatch_exhausts_retries_and_queues(message, email_config):
    """Test that a persistent failure ends in the failure queue."""
    channel = RecordingChannel(fail_for=["hahn@example.com"])
    sleep = Mock()
    queue = InMemoryFailureQueue()
    service = NotificationService(channel, email_config=email_config, failure_queue=queue, sleep=sleep)

    result = service.dispatch(message)

    assert result.sent is False
    assert result.attempts == 3
    assert "Mailbox unavailable" in result.error
    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    failures = queue.drain()
    assert len(failures) == 1
    assert failures[0].message == message
    assert failures[0].attempts == 3
    assert len(queue) == 0


def test_dispatch_without_retries(message):
    """Test max_retries=0 sends exactly once."""
    channel = RecordingChannel(fail_for=["hahn@example.com"])
    service = NotificationService(channel, email_config=EmailConfig(max_retries=0), sleep=Mock())

    result = service.dispatch(message)

    assert result.attempts == 1
    assert len(channel.attempts) == 1


def test_dispatch_does_not_retry_unexpected_errors(message, email_config):
    """Test that only DispatchError is retried."""
    channel = Mock()
    channel.send.side_effect = RuntimeError("boom")
    service = NotificationService(channel, email_config=email_config, sleep=Mock())

    with pytest.raises(RuntimeError):
        service.dispatch(message)

    assert channel.send.call_count == 1


def test_dispatch_with_mock_channel(message):
    """Test that the channel receipt is passed through."""
    channel = Mock()
    receipt = DeliveryReceipt(recipient="hahn@example.com", channel="mock")
    channel.send.return_value = receipt
    service = NotificationService(channel)

    result = service.dispatch(message)

    assert result.receipt is receipt
    channel.send.assert_called_once_with(message)


def test_retry_delay_backoff():
    """Test exponential backoff delays."""
    service = NotificationService(
        Mock(), email_config=EmailConfig(retry_initial_delay=1.5, retry_backoff_multiplier=3.0)
    )

    assert service.retry_delay(2) == 1.5
    assert service.retry_delay(3) == 4.5
    assert service.retry_delay(4) == 13.5


def test_retry_delay_is_capped():
    """Test the maximum retry delay."""
    service = NotificationService(
        Mock(),
        email_config=EmailConfig(
            max_retries=10, retry_initial_delay=30.0, retry_backoff_multiplier=5.0
        ),
    )

    assert service.retry_delay(5) == 60.0


def test_default_failure_queue_is_in_memory():
    """Test the default failure queue."""
    service = NotificationService(Mock())

    assert isinstance(service.failure_queue, InMemoryFailureQueue)


def test_dispatch_error_carries_recipient():
    """Test DispatchError attributes."""
    error = DispatchError("refused", recipient="hahn@example.com")

    assert error.recipient == "hahn@example.com"
    assert str(error) == "refused"
