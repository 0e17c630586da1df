"""Utility functions for App Publisher."""

from publisher.utils.logging import configure_logging, get_logger, mask_token

__all__ = [
    "configure_logging",
    "get_logger",
    "mask_token",
]
