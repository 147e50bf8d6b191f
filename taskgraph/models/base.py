"""
Shared helpers for data models.
"""

import uuid
from datetime import date
from typing import Any, Optional


def generate_id() -> str:
    """Generate a globally unique node identifier."""
    return str(uuid.uuid4())


def parse_date(value: Any) -> Optional[date]:
    """Parse a YYYY-MM-DD string (or date) into a date, None if invalid."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def format_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None
