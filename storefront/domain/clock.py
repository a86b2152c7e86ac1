"""Timestamps for the order domain"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time without tzinfo, as stored in the timezone-less DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
