"""Domain models for the sequence notifier."""

from .exceptions import InputValidationError
from .models import CustomerRecord, NotificationRequest, RenderedMessage, parse_request

__all__ = [
    "CustomerRecord",
    "InputValidationError",
    "NotificationRequest",
    "RenderedMessage",
    "parse_request",
]
