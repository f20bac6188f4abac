"""SMTP delivery channel.

Wraps smtplib with TLS/SSL negotiation and a connection that is opened and
authenticated once, reused for every message of a run, and closed at the end.
"""

import smtplib
import ssl
import threading
from email.message import EmailMessage
from email.utils import formataddr
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from sequence_notifier.domain.models import RenderedMessage
from sequence_notifier.logging import get_logger

from .channels import DeliveryChannel
from .models import AuthenticationError, Credentials, DeliveryReceipt, DispatchError

logger = get_logger(__name__, component="delivery")

IMPLICIT_TLS_PORT = 465


class SMTPChannel(DeliveryChannel):
    """Delivery channel backed by an SMTP server.

    Sends are serialized over the single authenticated connection, so the
    channel can be shared by concurrent dispatch workers.
    """

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        use_tls: bool = True,
        timeout: int = 30,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        """Initialize SMTP channel with optional factory injection.

        Args:
            host: SMTP server hostname
            port: SMTP server port (465 selects implicit TLS)
            use_tls: Upgrade plain connections with STARTTLS
            timeout: Socket timeout in seconds
            smtp_factory: Factory for SMTP instances (for mocking)
            smtp_ssl_factory: Factory for SMTP_SSL instances (for mocking)
        """
        self.host = host
        self.port = port
        self.use_tls = use_tls
        self.timeout = timeout
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL
        self._smtp = None
        self._credentials = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._smtp is not None

    def authenticate(self, credentials: Optional[Credentials] = None) -> None:
        """Connect, negotiate TLS and log in.

        The credentials are kept so a session dropped by the server can be
        reopened once by ``send``.

        Raises:
            AuthenticationError: If the server cannot be reached or rejects
                the credentials
        """
        self.close()
        self._smtp = self._connect(credentials)
        self._credentials = credentials
        logger.info(
            "SMTP session authenticated",
            extra={"event": "delivery.authenticated", "channel": self.name, "host": self.host},
        )

    def _connect(self, credentials: Optional[Credentials]):
        smtp = None
        try:
            if self.port == IMPLICIT_TLS_PORT:
                logger.debug(f"Connecting to {self.host}:{self.port} with implicit TLS")
                smtp = self.smtp_ssl_factory(
                    self.host,
                    self.port,
                    timeout=self.timeout,
                    context=ssl.create_default_context(),
                )
            else:
                logger.debug(f"Connecting to {self.host}:{self.port}")
                smtp = self.smtp_factory(self.host, self.port, timeout=self.timeout)
                if self.use_tls:
                    logger.debug("Upgrading connection with STARTTLS")
                    smtp.starttls(context=ssl.create_default_context())

            if credentials is not None and not credentials.is_anonymous:
                logger.debug(f"Authenticating as {credentials.user}")
                smtp.login(credentials.user, credentials.password)
            else:
                logger.debug("No authentication credentials provided, proceeding without auth")

        except smtplib.SMTPAuthenticationError as e:
            self._quit(smtp)
            raise AuthenticationError(f"SMTP server rejected credentials: {e}") from e
        except (smtplib.SMTPException, OSError) as e:
            self._quit(smtp)
            raise AuthenticationError(
                f"Could not open SMTP session with {self.host}:{self.port}: {e}"
            ) from e

        return smtp

    def send(self, message: RenderedMessage) -> DeliveryReceipt:
        """Send one message over the open session.

        If the server has dropped the connection, the session is reopened
        with the same credentials and the message is sent once more.

        Raises:
            DispatchError: If the recipient is invalid or delivery fails
        """
        email_message = build_email_message(message)

        with self._lock:
            if self._smtp is None:
                raise DispatchError(
                    "SMTP session is not authenticated", recipient=message.recipient_email
                )
            try:
                try:
                    refused = self._smtp.send_message(email_message)
                except smtplib.SMTPServerDisconnected:
                    self._reconnect()
                    refused = self._smtp.send_message(email_message)
            except AuthenticationError as e:
                raise DispatchError(
                    f"Lost SMTP session while delivering to {message.recipient_email}: {e}",
                    recipient=message.recipient_email,
                ) from e
            except (smtplib.SMTPException, OSError) as e:
                raise DispatchError(
                    f"SMTP error delivering to {message.recipient_email}: {e}",
                    recipient=message.recipient_email,
                ) from e

        if refused:
            raise DispatchError(
                f"Recipient refused by server: {refused}", recipient=message.recipient_email
            )

        logger.debug(f"Message sent successfully to {email_message['To']}")
        return DeliveryReceipt(recipient=email_message["To"], channel=self.name)

    def _reconnect(self) -> None:
        """Replace a dropped connection. Caller holds the send lock."""
        logger.warning(
            "SMTP server closed the connection, reconnecting",
            extra={"event": "delivery.reconnecting", "channel": self.name, "host": self.host},
        )
        stale, self._smtp = self._smtp, None
        self._quit(stale)
        self._smtp = self._connect(self._credentials)

    def close(self) -> None:
        smtp, self._smtp = self._smtp, None
        self._quit(smtp)

    @staticmethod
    def _quit(smtp) -> None:
        if smtp is None:
            return
        try:
            smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Error closing SMTP connection: {e}")


def normalize_recipient(address: str) -> str:
    """Validate a recipient address and return its normalized form.

    Raises:
        DispatchError: If the address is not a valid email address
    """
    try:
        return validate_email(address, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise DispatchError(f"Invalid recipient address '{address}': {e}", recipient=address) from e


def build_sender_address(name: Optional[str], email: str) -> str:
    """Build the From header, e.g. ``Sequence Notifier <hahn@example.com>``."""
    if not name:
        return email
    return formataddr((name, email))


def build_email_message(message: RenderedMessage) -> EmailMessage:
    """Convert a RenderedMessage into a plain-text EmailMessage."""
    email_message = EmailMessage()
    email_message["Subject"] = message.subject
    email_message["From"] = message.sender
    email_message["To"] = normalize_recipient(message.recipient_email)
    email_message.set_content(message.body)
    return email_message
