"""Shared utilities."""

from buildvault.utils.logging_config import configure_logging

__all__ = ["configure_logging"]
