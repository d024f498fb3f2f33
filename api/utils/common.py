"""
Common utility functions used across multiple routes.
"""

from datetime import datetime, timezone
from typing import Optional


def iso_format(dt: Optional[datetime]) -> Optional[str]:
    """Format a naive-UTC datetime as ISO string with Z suffix."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat() + "Z"


def as_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; convert aware datetimes before persisting or comparing."""
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def display_name(email: str, preferences: Optional[dict] = None) -> str:
    """Get display name from user preferences or email."""
    prefs = preferences or {}
    name = None
    if isinstance(prefs, dict):
        name = prefs.get("name") or prefs.get("full_name")
    if isinstance(name, str) and name.strip():
        return name.strip()
    # fallback: email prefix
    return email.split("@", 1)[0]


def as_aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a stored naive timestamp so it serializes with an offset."""
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)
