"""Utilities package."""

from .concurrency import run_blocking
from .logging import configure_logging, get_logger, mask_pii

__all__ = ["configure_logging", "get_logger", "mask_pii", "run_blocking"]
