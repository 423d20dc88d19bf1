# lostfound/utils/dates.py
from datetime import datetime, timezone
from typing import Optional, Union

DB_FORMAT = "%Y-%m-%d %H:%M:%S"

def format_occurred_at(value: Union[datetime, str, None], now: Optional[datetime] = None) -> str:
    """Fixed-width UTC timestamp; falls back to `now` when value is missing or unparseable."""
    moment = _coerce(value) or now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(DB_FORMAT)

def parse_occurred_at(value: Union[datetime, str, None]) -> Optional[datetime]:
    moment = _coerce(value)
    if moment is not None and moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment

def _coerce(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None
