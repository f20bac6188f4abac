"""Data models and exceptions for notification delivery."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sequence_notifier.utils.timestamps import utc_now


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when the subject template cannot be rendered."""

    pass


class AuthenticationError(NotificationError):
    """Raised when the delivery channel rejects the credentials.

    Fatal for the invocation: no message is dispatched.
    """

    pass


class DispatchError(NotificationError):
    """Raised when one message could not be delivered.

    Contained to the record the message was built for.
    """

    def __init__(self, message: str, recipient: Optional[str] = None):
        super().__init__(message)
        self.recipient = recipient


@dataclass(frozen=True)
class Credentials:
    """Delivery channel credentials. Both fields None means no authentication."""

    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def is_anonymous(self) -> bool:
        return not (self.user and self.password)


@dataclass(frozen=True)
class DeliveryReceipt:
    """Acknowledgement returned by a channel for one delivered message."""

    recipient: str
    channel: str
    accepted_at: datetime = field(default_factory=utc_now)
    detail: Optional[str] = None
