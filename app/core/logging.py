"""
Logging utilities for the FastAPI application and maintenance scripts.

Provides a consistent logging format and configuration.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Render a secret for log output without exposing it."""
    if not value:
        return "<absent>"
    if len(value) <= visible * 2:
        return "***"
    return f"{value[:visible]}...({len(value)} chars)"


__all__ = ["configure_logging", "mask_secret"]
