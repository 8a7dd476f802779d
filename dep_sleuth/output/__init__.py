"""Output formatting for DepSleuth results."""

from .formatters import ConsoleFormatter, JSONFormatter

__all__ = ["ConsoleFormatter", "JSONFormatter"]
