"""
Local clock helpers. "Today" always means since local midnight.
"""

from datetime import datetime, time, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from boothcrm.config import config


def local_tz() -> tzinfo:
    """Configured TIMEZONE, or the host's local zone when unset."""
    if config.TIMEZONE:
        return ZoneInfo(config.TIMEZONE)
    return datetime.now().astimezone().tzinfo


def local_now() -> datetime:
    return datetime.now(local_tz())


def local_midnight(now: Optional[datetime] = None) -> datetime:
    """Start of the local day containing `now`, whatever zone `now` carries."""
    now = (now or local_now()).astimezone(local_tz())
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """ISO string or datetime -> aware datetime. Naive values are taken as local."""
    if value is None or value == '':
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=local_tz())
    return parsed
