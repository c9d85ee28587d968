"""
Timezone Utility Module
All persisted timestamps are UTC
"""
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

UTC_TZ = ZoneInfo("UTC")


def now_utc() -> datetime:
    """Get current datetime in UTC timezone."""
    return datetime.now(UTC_TZ)


def to_utc(dt: datetime) -> datetime:
    """Convert any datetime to UTC timezone."""
    if dt.tzinfo is None:
        # Mongo returns naive datetimes that are already UTC
        dt = dt.replace(tzinfo=UTC_TZ)
    return dt.astimezone(UTC_TZ)


def format_utc(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as UTC ISO string."""
    if dt is None:
        return None
    return to_utc(dt).isoformat()
