"""Time utilities (settlement timezone)."""

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from settlement.config import settings

LOCAL_TZ = ZoneInfo(settings.TIMEZONE)

# Daily windows are inclusive at second precision: [00:00:00, 23:59:59]
_END_OF_DAY = time(23, 59, 59)


def now_local_naive() -> datetime:
    """
    Current time in the settlement timezone, returned as naive datetime for DB storage.
    """
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)


def today_local() -> date:
    return datetime.now(LOCAL_TZ).date()


def yesterday_local() -> date:
    return today_local() - timedelta(days=1)


def day_window(period_start: date, period_end: date) -> tuple[datetime, datetime]:
    """
    Return the (start, end) datetimes covering a settlement period.
    """
    return (
        datetime.combine(period_start, time.min),
        datetime.combine(period_end, _END_OF_DAY),
    )
