"""Message rendering.

The body comes from the caller-supplied template with literal
``{first_name}`` and ``{matches}`` placeholders. The subject line comes from
configuration and is a Jinja2 template.
"""

import logging
from typing import Optional, Sequence

from jinja2 import Environment, StrictUndefined, TemplateError

from sequence_notifier.domain.models import CustomerRecord, RenderedMessage

from .models import NotificationTemplateError

logger = logging.getLogger(__name__)

NAME_PLACEHOLDER = "{first_name}"
MATCHES_PLACEHOLDER = "{matches}"
MATCH_SEPARATOR = ", "


def render_message(name: str, template: str, matches: Sequence[str]) -> str:
    """Substitute a recipient name and match list into a message template.

    Only the first occurrence of each placeholder is replaced; later
    occurrences are left as they are. The name is substituted first.

    Args:
        name: Recipient first name
        template: Message template
        matches: Extracted sub-sequences, joined with ", "

    Returns:
        Rendered message body
    """
    body = template.replace(NAME_PLACEHOLDER, name, 1)
    return body.replace(MATCHES_PLACEHOLDER, MATCH_SEPARATOR.join(matches), 1)


class MessageRenderer:
    """Builds RenderedMessage objects for matched records.

    Subject templates are compiled once per renderer and rendered with
    ``first_name``, ``matches`` and ``match_count`` in scope. Undefined
    variables are errors.
    """

    def __init__(
        self,
        subject_template: str,
        sender: str,
        environment: Optional[Environment] = None,
    ):
        """Initialize MessageRenderer.

        Args:
            subject_template: Jinja2 source for the subject line
            sender: Value of the From header
            environment: Jinja2 environment (plain-text defaults if None)

        Raises:
            NotificationTemplateError: If the subject template does not compile
        """
        self.sender = sender
        self.env = environment or Environment(
            autoescape=False,  # Plain-text subject lines
            undefined=StrictUndefined,
            keep_trailing_newline=False,
        )
        try:
            self._subject = self.env.from_string(subject_template)
        except TemplateError as e:
            raise NotificationTemplateError(f"Invalid subject template: {e}") from e

    def render_subject(self, record: CustomerRecord, matches: Sequence[str]) -> str:
        """Render the subject line as a single line of text.

        Raises:
            NotificationTemplateError: If rendering fails
        """
        try:
            subject = self._subject.render(
                first_name=record.first_name,
                matches=list(matches),
                match_count=len(matches),
            )
        except TemplateError as e:
            error_msg = f"Subject rendering failed: {e}"
            logger.error(error_msg)
            raise NotificationTemplateError(error_msg) from e
        return " ".join(subject.split())

    def render(
        self, record: CustomerRecord, template: str, matches: Sequence[str]
    ) -> RenderedMessage:
        """Render the complete message for one record.

        Args:
            record: Matched customer record
            template: Body template from the notification request
            matches: Non-empty list of extracted sub-sequences

        Returns:
            A new RenderedMessage addressed to the record's email

        Raises:
            NotificationTemplateError: If the subject cannot be rendered
        """
        return RenderedMessage(
            recipient_email=record.email,
            sender=self.sender,
            subject=self.render_subject(record, matches),
            body=render_message(record.first_name, template, matches),
        )
