"""Delivery channel factory."""

from sequence_notifier.config.environment import EnvironmentConfig
from sequence_notifier.config.exceptions import ConfigurationError
from sequence_notifier.config.models import AppConfig, DeliveryBackend

from .channels import DeliveryChannel, LogChannel
from .models import Credentials
from .smtp_client import SMTPChannel, build_sender_address


def get_channel(app_config: AppConfig, env_config: EnvironmentConfig) -> DeliveryChannel:
    """Build the delivery channel selected by ``delivery.backend``.

    Raises:
        ConfigurationError: If the SMTP backend is selected without a host/port
    """
    backend = app_config.delivery.backend

    if backend == DeliveryBackend.LOG.value:
        return LogChannel()

    if backend == DeliveryBackend.SMTP.value:
        if not env_config.smtp_host or not env_config.smtp_port:
            raise ConfigurationError(
                "SMTP delivery requires SMTP_HOST and SMTP_PORT",
                suggestions=["Set SMTP_HOST and SMTP_PORT", "Or set delivery.backend to 'log'"],
            )
        return SMTPChannel(
            host=env_config.smtp_host,
            port=env_config.smtp_port,
            use_tls=app_config.email.use_tls,
            timeout=app_config.email.timeout,
        )

    raise ConfigurationError(f"Unsupported delivery backend: {backend}")


def get_credentials(env_config: EnvironmentConfig) -> Credentials:
    """Credentials for the delivery channel from SMTP_USER/SMTP_PASS."""
    return Credentials(user=env_config.smtp_user, password=env_config.smtp_pass)


def get_sender(app_config: AppConfig, env_config: EnvironmentConfig) -> str:
    """From header; SMTP_SENDER_NAME overrides the configured display name."""
    name = env_config.smtp_sender_name or app_config.sender.name
    return build_sender_address(name, str(app_config.sender.email))
