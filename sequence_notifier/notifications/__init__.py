"""Rendering and delivery of sequence notifications.

- render_message / MessageRenderer: body and subject rendering
- DeliveryChannel: contract for delivery collaborators (SMTPChannel, LogChannel)
- NotificationService: send step with retry/backoff and failure queueing
- FailureQueue: hook receiving messages that could not be delivered
"""

from .channels import DeliveryChannel, LogChannel
from .factory import get_channel, get_credentials, get_sender
from .failures import FailedDispatch, FailureQueue, InMemoryFailureQueue
from .models import (
    AuthenticationError,
    Credentials,
    DeliveryReceipt,
    DispatchError,
    NotificationError,
    NotificationTemplateError,
)
from .service import DispatchResult, NotificationService
from .smtp_client import SMTPChannel, build_sender_address, normalize_recipient
from .templates import MessageRenderer, render_message

__all__ = [
    # Rendering
    "render_message",
    "MessageRenderer",
    # Channels
    "DeliveryChannel",
    "LogChannel",
    "SMTPChannel",
    "get_channel",
    "get_credentials",
    "get_sender",
    # Dispatch
    "NotificationService",
    "DispatchResult",
    "FailureQueue",
    "FailedDispatch",
    "InMemoryFailureQueue",
    # Models and exceptions
    "Credentials",
    "DeliveryReceipt",
    "NotificationError",
    "NotificationTemplateError",
    "AuthenticationError",
    "DispatchError",
    # Utilities
    "build_sender_address",
    "normalize_recipient",
]
