"""
UTC calendar helpers shared by the history builders.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

END_OF_DAY = time(23, 59, 59, 999000)


def utc_now(clock_seconds: Optional[float] = None) -> datetime:
    """Current UTC datetime, or the one for ``clock_seconds`` since the epoch."""
    if clock_seconds is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(clock_seconds, tz=timezone.utc)


def end_of_day(day: date) -> datetime:
    """23:59:59.999 UTC on ``day``."""
    return datetime.combine(day, END_OF_DAY, tzinfo=timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    return int(round(moment.timestamp() * 1000))


def days_back(today: date, offset: int) -> date:
    return today - timedelta(days=offset)


def parse_timestamp_ms(value: Union[str, int, float, None]) -> Optional[int]:
    """Parse an epoch (seconds or milliseconds) or ISO-8601 timestamp to epoch ms.

    Numbers below 10**11 are taken as seconds. Returns None when the value
    cannot be interpreted, including NaN and infinities.
    """
    if value is None or value == "":
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        try:
            number = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return to_epoch_ms(parsed)

    if not math.isfinite(number):
        return None
    return int(number if number >= 1e11 else number * 1000)


def iso_date(moment: datetime) -> str:
    """YYYY-MM-DD of a UTC datetime."""
    return moment.astimezone(timezone.utc).date().isoformat()
