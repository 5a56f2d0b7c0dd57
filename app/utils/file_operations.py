"""
File operation utilities

This module handles reading the listings source and fingerprinting its content.
"""
import hashlib
import logging
from pathlib import Path


logger = logging.getLogger(__name__)


def read_source_file(file_path: Path | str) -> bytes:
    """
    Read the listings file into memory

    Args:
        file_path: Path to the listings file

    Returns:
        Raw file content

    Raises:
        OSError: If the file is missing or unreadable
    """
    path = Path(file_path)
    data = path.read_bytes()
    logger.debug(f"Read {len(data) / (1024 * 1024):.2f} MB from {path}")
    return data


def content_digest(data: bytes) -> str:
    """
    Compute a stable fingerprint of source content

    Args:
        data: Raw file content

    Returns:
        Hex-encoded SHA-256 digest
    """
    return hashlib.sha256(data).hexdigest()
