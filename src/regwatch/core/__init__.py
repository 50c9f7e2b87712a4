"""Core utilities: constants, logging, exceptions."""

from regwatch.core.exceptions import RegwatchError
from regwatch.core.logging import get_logger, setup_logging

__all__ = [
    "RegwatchError",
    "get_logger",
    "setup_logging",
]
