"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import datetime, timezone


def log_refresh_start(logger: logging.Logger, source: str) -> None:
    """Log listings refresh start."""
    logger.info(f"Listings refresh of {source} started at {datetime.now(timezone.utc).isoformat()}")


def log_refresh_end(logger: logging.Logger, source: str) -> None:
    """Log listings refresh end."""
    logger.info(f"Listings refresh of {source} completed at {datetime.now(timezone.utc).isoformat()}")


def log_snapshot_stats(
    logger: logging.Logger,
    total_channels: int,
    total_programmes: int,
    digest: str
) -> None:
    """
    Log snapshot statistics.

    Args:
        logger: Logger instance
        total_channels: Channels in the channel index
        total_programmes: Programmes in the snapshot
        digest: Source content digest
    """
    logger.info(
        f"Snapshot installed: {total_channels} channels, {total_programmes} programmes "
        f"(digest {digest[:12]})"
    )
