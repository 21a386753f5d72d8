"""Utility modules for container-fixtures."""

from .logging import setup_logging

__all__ = [
    "setup_logging",
]
