from datetime import datetime, timezone
from typing import Optional
import uuid

from .logger import logger

def new_id() -> str:
    """Generate a fresh identifier for a bookmark or group"""
    return str(uuid.uuid4())

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def format_timestamp(value: datetime) -> str:
    """
    Format a timestamp as ISO-8601. Naive datetimes are assumed to be UTC
    so that exported documents never carry local wall-clock times.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()

def parse_timestamp(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp.
    Accepts the trailing 'Z' form written by JavaScript's toISOString().
    Returns None if the value cannot be parsed.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        logger.debug(f"Timestamp parsing failed | Value: {value} | Error: {e}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
