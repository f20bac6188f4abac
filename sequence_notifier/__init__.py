"""Sequence Notifier - notify customers whose stored sequences carry a marked run."""

__version__ = "0.1.0"
