"""
Common utility functions and helpers.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional
import os
import re
import uuid
import logging

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    All timestamp columns store naive UTC so values compare the same way
    whether they come from Python or back from the database.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_project_id() -> str:
    """
    Generate a readable project identifier.

    Returns:
        String like ``PRJ-1A2B3C4D``
    """
    return f"PRJ-{uuid.uuid4().hex[:8].upper()}"


def make_storage_name(original_name: str, timestamp: Optional[int] = None) -> str:
    """
    Build the object-store key for an uploaded file.

    Args:
        original_name: Filename as sent by the client
        timestamp: Milliseconds since epoch (defaults to now)

    Returns:
        ``<timestamp>_<name with whitespace replaced by underscores>``
    """
    if timestamp is None:
        timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    safe_name = re.sub(r"\s+", "_", os.path.basename(original_name))
    return f"{timestamp}_{safe_name}"


def join_non_blank(parts: Iterable[Optional[str]], separator: str = "\n\n") -> str:
    """Join the non-empty, non-whitespace strings of *parts*."""
    return separator.join(p for p in parts if p and p.strip())


def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def safe_remove(path: str) -> None:
    """Delete a local file, logging instead of raising on failure."""
    try:
        if path and os.path.exists(path):
            os.remove(path)
    except Exception as exc:
        logger.warning("Could not remove file %r: %s", path, exc)
