"""Advisory checks on raw configuration dictionaries."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """Return warnings for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    delivery = config_dict.get("delivery") or {}
    if isinstance(delivery, dict):
        if delivery.get("backend") == "log":
            warning_messages.append(
                "delivery.backend is 'log': notifications are logged, not sent"
            )
        workers = delivery.get("dispatch_workers", 1)
        if isinstance(workers, int) and workers > 8:
            warning_messages.append(
                f"High dispatch_workers ({workers}) may exceed SMTP server connection limits"
            )

    email = config_dict.get("email") or {}
    if isinstance(email, dict) and email.get("use_tls") is False:
        warning_messages.append("email.use_tls is disabled: credentials are sent in clear text")

    source = config_dict.get("source") or {}
    if isinstance(source, dict) and source.get("prefilter") is False:
        warning_messages.append(
            "source.prefilter is disabled: every stored sequence will be scanned"
        )

    seed = config_dict.get("seed") or {}
    if isinstance(seed, dict):
        rows = seed.get("rows", 0)
        if isinstance(rows, int) and rows > 100000:
            warning_messages.append(f"Large seed.rows ({rows}) may take a long time to insert")

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message through the warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
