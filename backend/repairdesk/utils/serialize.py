from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Optional


def iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        # SQLite drops tzinfo; values are stored in UTC
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace('+00:00', 'Z')


def enum_value(value: Any) -> Any:
    return getattr(value, 'value', value)
