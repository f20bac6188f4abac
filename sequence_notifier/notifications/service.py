"""Dispatch of rendered messages with retry/backoff.

NotificationService owns the send step of the pipeline: it sends one
message over an already authenticated channel, retries transient failures
with exponential backoff, and hands messages that still fail to the
failure queue.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from sequence_notifier.config.models import EmailConfig
from sequence_notifier.domain.models import RenderedMessage
from sequence_notifier.logging import get_logger

from .channels import DeliveryChannel
from .failures import FailedDispatch, FailureQueue, InMemoryFailureQueue
from .models import DeliveryReceipt, DispatchError

logger = get_logger(__name__, component="notification")

MAX_RETRY_DELAY_SECONDS = 60.0


@dataclass
class DispatchResult:
    """Outcome of sending one message.

    Attributes:
        recipient: Recipient email address
        attempts: Number of send attempts made
        receipt: Channel acknowledgement when delivered
        error: Last error message when delivery failed
    """

    recipient: str
    attempts: int
    receipt: Optional[DeliveryReceipt] = None
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.receipt is not None


class NotificationService:
    """Sends rendered messages through a delivery channel."""

    def __init__(
        self,
        channel: DeliveryChannel,
        email_config: Optional[EmailConfig] = None,
        failure_queue: Optional[FailureQueue] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize notification service.

        Args:
            channel: Delivery channel (authenticated by the caller)
            email_config: Retry settings (defaults if None)
            failure_queue: Receives messages that could not be delivered
            sleep: Sleep function used between retries (for testing)
            logger_instance: Logger instance (uses module logger if None)
        """
        self.channel = channel
        self.email_config = email_config or EmailConfig()
        self.failure_queue = failure_queue if failure_queue is not None else InMemoryFailureQueue()
        self.sleep = sleep
        self.logger = logger_instance or logger

    def retry_delay(self, attempt: int) -> float:
        """Delay before ``attempt`` (2 is the first retry)."""
        delay = self.email_config.retry_initial_delay * (
            self.email_config.retry_backoff_multiplier ** (attempt - 2)
        )
        return min(delay, MAX_RETRY_DELAY_SECONDS)

    def dispatch(self, message: RenderedMessage) -> DispatchResult:
        """Send one message, retrying on DispatchError.

        Never raises DispatchError; a message that cannot be delivered is
        reported in the result and queued on the failure queue.

        Args:
            message: Message to deliver

        Returns:
            DispatchResult with receipt or last error
        """
        recipient = message.recipient_email
        max_attempts = self.email_config.max_retries + 1
        last_error: Optional[str] = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = self.retry_delay(attempt)
                self.logger.warning(
                    f"Retrying delivery to {recipient} (attempt {attempt}/{max_attempts}) "
                    f"after {delay:.1f}s delay",
                    extra={"event": "notification.send.attempt", "attempt": attempt},
                )
                self.sleep(delay)

            try:
                receipt = self.channel.send(message)
            except DispatchError as e:
                last_error = str(e)
                self.logger.warning(
                    f"Delivery to {recipient} failed (attempt {attempt}/{max_attempts}): {e}",
                    extra={
                        "event": "notification.send.failure",
                        "attempt": attempt,
                        "retry_remaining": attempt < max_attempts,
                    },
                )
                continue

            self.logger.info(
                f"Notification sent to {recipient} (attempts: {attempt})",
                extra={"event": "notification.send.success", "attempt": attempt},
            )
            return DispatchResult(recipient=recipient, attempts=attempt, receipt=receipt)

        self.logger.error(
            f"Delivery to {recipient} failed after {max_attempts} attempts: {last_error}",
            extra={
                "event": "notification.send.exhausted",
                "attempts": max_attempts,
                "error": last_error,
            },
        )
        self.failure_queue.enqueue(
            FailedDispatch(message=message, error=last_error or "unknown error", attempts=max_attempts)
        )
        return DispatchResult(recipient=recipient, attempts=max_attempts, error=last_error)
