"""Logging utilities for DepSleuth."""

import logging
from pathlib import Path
from typing import Any, Optional, Set
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "red",
    "critical": "red bold",
    "debug": "dim",
})

# Level applied to component loggers, updated by setup_logging()
_component_levels = {"level": logging.INFO}
_component_names: Set[str] = set()


class DepSleuthLogger:
    """Custom logger with rich formatting.

    Log output goes to stderr so that JSON reports on stdout stay parseable.
    """

    def __init__(self, name: str, level: Optional[int] = None) -> None:
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level if level is not None else _component_levels["level"])
        _component_names.add(name)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Setup rich console handler with custom theme."""
        console = Console(theme=_THEME, stderr=True)

        handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            markup=False,
        )

        formatter = logging.Formatter(
            fmt="%(name)s: %(message)s",
            datefmt="[%X]"
        )
        handler.setFormatter(formatter)

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()
        self.logger.addHandler(handler)
        self.logger.propagate = False

    def setLevel(self, level: int) -> None:
        self.logger.setLevel(level)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message."""
        self.logger.info(msg, extra=kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message."""
        self.logger.warning(msg, extra=kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log error message."""
        self.logger.error(msg, extra=kwargs)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message."""
        self.logger.debug(msg, extra=kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        """Log critical message."""
        self.logger.critical(msg, extra=kwargs)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    verbose: bool = False
) -> None:
    """Setup logging configuration for DepSleuth.

    Args:
        level: Logging level
        log_file: Optional log file path
        verbose: Enable verbose logging
    """
    if verbose:
        level = logging.DEBUG

    _component_levels["level"] = level
    for name in _component_names:
        logging.getLogger(name).setLevel(level)

    handlers: list = [RichHandler(console=Console(theme=_THEME, stderr=True), show_path=False)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(name)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def get_logger(name: str) -> DepSleuthLogger:
    """Get a DepSleuth logger instance.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return DepSleuthLogger(name)
