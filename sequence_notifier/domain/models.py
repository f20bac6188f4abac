"""Core domain models.

- NotificationRequest: what to look for and what to say, one per invocation
- CustomerRecord: read-only copy of one stored customer sequence
- RenderedMessage: a personalised notification ready for delivery
"""

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator

from .exceptions import InputValidationError


class NotificationRequest(BaseModel):
    """Inbound request to notify every customer carrying a marked sequence.

    Accepts both the field names and the inbound aliases used by the
    request payload (``first_codon``, ``final_codon``, ``template``).
    Markers are literal text; they are not stripped or otherwise altered.
    """

    start_marker: str = Field(..., alias="first_codon", description="Start codon")
    end_marker: str = Field(..., alias="final_codon", description="End codon")
    message_template: str = Field(
        ..., alias="template", description="Body template with {first_name}/{matches}"
    )

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "first_codon": "ATG",
                "final_codon": "TTG",
                "template": 'Hello {first_name}, we found that you have the sequence "{matches}".',
            }
        },
    )

    @field_validator("start_marker", "end_marker", "message_template")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v


def parse_request(payload: Mapping[str, Any]) -> NotificationRequest:
    """Build a NotificationRequest from an inbound payload.

    Args:
        payload: Mapping using either field names or inbound aliases

    Returns:
        Validated NotificationRequest

    Raises:
        InputValidationError: If a marker or the template is missing or empty
    """
    if not isinstance(payload, Mapping):
        raise InputValidationError("Notification request must be a JSON object")
    try:
        return NotificationRequest.model_validate(dict(payload))
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            errors.append(f"{field_path}: {error['msg']}")
        raise InputValidationError("Invalid notification request", errors=errors) from e


class CustomerRecord(BaseModel):
    """A customer and one of their stored sequences."""

    first_name: str = Field(..., description="Customer first name")
    email: EmailStr = Field(..., description="Customer email address")
    sequence: str = Field(..., description="Genetic sequence")

    model_config = ConfigDict(frozen=True)


class RenderedMessage(BaseModel):
    """A notification for exactly one customer record."""

    recipient_email: str
    sender: str
    subject: str
    body: str

    model_config = ConfigDict(frozen=True)
