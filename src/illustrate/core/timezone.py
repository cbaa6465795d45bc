"""UTC timezone enforcement and clock helper.

Sets the TZ environment variable to UTC to ensure consistent datetime
behavior across all environments. Timestamps are timezone-aware UTC and
stored in ``DateTime(timezone=True)`` columns.
"""

import os
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime

# Set UTC timezone for the entire application
os.environ["TZ"] = "UTC"


def utcnow() -> datetime:
    """Current time as timezone-aware UTC."""
    return datetime.now(timezone.utc)


def timestamp_column() -> Column:
    """Indexed, non-null timezone-aware timestamp column."""
    return Column(DateTime(timezone=True), nullable=False, index=True)
