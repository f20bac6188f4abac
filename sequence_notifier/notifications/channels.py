"""Delivery channel contract and the logging channel.

A channel is authenticated once per notification run, then asked to send
any number of messages, then closed. Implementations raise
AuthenticationError and DispatchError rather than returning status codes.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from sequence_notifier.domain.models import RenderedMessage
from sequence_notifier.logging import get_logger

from .models import Credentials, DeliveryReceipt, DispatchError

logger = get_logger(__name__, component="delivery")


class DeliveryChannel(ABC):
    """Base class for all delivery channels.

    Usable as a context manager; leaving the block closes the channel.
    """

    name = "channel"

    @abstractmethod
    def authenticate(self, credentials: Optional[Credentials] = None) -> None:
        """Open an authenticated session.

        Raises:
            AuthenticationError: If the credentials are rejected or the
                channel cannot be reached
        """

    @abstractmethod
    def send(self, message: RenderedMessage) -> DeliveryReceipt:
        """Deliver one message over the authenticated session.

        Raises:
            DispatchError: If this message could not be delivered
        """

    def close(self) -> None:
        """Release the session. Safe to call more than once."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class LogChannel(DeliveryChannel):
    """Channel that logs messages instead of transmitting them.

    Keeps every accepted message in ``sent`` so dry runs can be inspected.
    """

    name = "log"

    def __init__(self, logger_instance: Optional[logging.Logger] = None):
        self.logger = logger_instance or logger
        self.sent: List[RenderedMessage] = []
        self.authenticated = False
        self._lock = threading.Lock()

    def authenticate(self, credentials: Optional[Credentials] = None) -> None:
        self.authenticated = True
        self.logger.info(
            "Log channel ready",
            extra={
                "event": "delivery.authenticated",
                "channel": self.name,
                "user": credentials.user if credentials else None,
            },
        )

    def send(self, message: RenderedMessage) -> DeliveryReceipt:
        if not self.authenticated:
            raise DispatchError("Channel is not authenticated", recipient=message.recipient_email)

        with self._lock:
            self.sent.append(message)

        self.logger.info(
            f"Notification for {message.recipient_email}: {message.body}",
            extra={
                "event": "delivery.logged",
                "channel": self.name,
                "recipient": message.recipient_email,
                "subject": message.subject,
            },
        )
        return DeliveryReceipt(recipient=message.recipient_email, channel=self.name)

    def close(self) -> None:
        self.authenticated = False
