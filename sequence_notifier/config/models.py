"""Configuration schema models using Pydantic."""

from enum import Enum

from pydantic import BaseModel, EmailStr, Field, field_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class DeliveryBackend(str, Enum):
    """Delivery channel implementations."""

    SMTP = "smtp"
    LOG = "log"


class SenderConfig(BaseModel):
    """Identity used in the From header of every notification."""

    email: EmailStr = Field("hahn@example.com", description="Sender email address")
    name: str = Field("Sequence Notifier", min_length=1, description="Sender display name")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Sender name cannot be empty or whitespace-only")
        return stripped


class MessageConfig(BaseModel):
    """Message settings that are not part of the inbound request."""

    subject_template: str = Field(
        "Kia Ora! Sequence results enclosed.",
        min_length=1,
        description="Jinja2 template for the subject line",
    )


class EmailConfig(BaseModel):
    """SMTP transport settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    timeout: int = Field(30, ge=1, le=300, description="SMTP socket timeout (seconds)")
    max_retries: int = Field(
        2, ge=0, le=10, description="Number of retry attempts for a failed send"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: float = Field(
        1.0, ge=0.0, le=60.0, description="Initial retry delay in seconds"
    )


class DeliveryConfig(BaseModel):
    """Which channel delivers notifications and how many sends run at once."""

    backend: DeliveryBackend = Field(DeliveryBackend.SMTP, description="Delivery channel")
    dispatch_workers: int = Field(
        1, ge=1, le=32, description="Concurrent send operations (1 = sequential)"
    )

    model_config = {"use_enum_values": True}


class SourceConfig(BaseModel):
    """Record source tuning."""

    batch_size: int = Field(
        100, ge=1, le=10000, description="Rows fetched from the database per round trip"
    )
    prefilter: bool = Field(
        True, description="Narrow rows with a LIKE pattern before matching"
    )


class SeedConfig(BaseModel):
    """Defaults for the seed command."""

    rows: int = Field(50, ge=0, description="Number of customers to generate")
    sequence_length: int = Field(60, ge=1, description="Length of each generated sequence")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object. Every section has defaults."""

    sender: SenderConfig = Field(default_factory=SenderConfig)
    message: MessageConfig = Field(default_factory=MessageConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    seed: SeedConfig = Field(default_factory=SeedConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "forbid"}
