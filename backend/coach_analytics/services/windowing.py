# windowing engine: chart periods to half-open, bucketed time windows
# calendar periods align to their natural unit, rolling periods end at the close of the reference day

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Optional, Union
from zoneinfo import ZoneInfo

from coach_analytics.config import settings
from coach_analytics.errors import InvalidPeriodError
from coach_analytics.models.metrics import Window

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)


class ChartPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    LAST_90_DAYS = "3months"
    LAST_180_DAYS = "6months"
    LAST_365_DAYS = "1year"
    CUSTOM = "custom"


# profile chart selector values
PERIOD_ALIASES = {
    "1M": ChartPeriod.LAST_30_DAYS,
    "3M": ChartPeriod.LAST_90_DAYS,
    "6M": ChartPeriod.LAST_180_DAYS,
    "1Y": ChartPeriod.LAST_365_DAYS,
}

ROLLING_DAYS = {
    ChartPeriod.LAST_7_DAYS: 7,
    ChartPeriod.LAST_30_DAYS: 30,
    ChartPeriod.LAST_90_DAYS: 90,
    ChartPeriod.LAST_180_DAYS: 180,
    ChartPeriod.LAST_365_DAYS: 365,
}


def parse_period(value: Union[str, ChartPeriod, None]) -> ChartPeriod:
    """resolve a period value; no value means the shortest window (day)"""
    if value is None or value == "":
        return ChartPeriod.DAY
    if isinstance(value, ChartPeriod):
        return value
    if isinstance(value, str):
        if value in PERIOD_ALIASES:
            return PERIOD_ALIASES[value]
        try:
            return ChartPeriod(value.strip().lower())
        except ValueError:
            pass
    raise InvalidPeriodError(value)


def resolve_zone(tz: Union[str, ZoneInfo, timezone, None]):
    if tz is None:
        tz = settings.DEFAULT_TIMEZONE
    if isinstance(tz, str):
        return timezone.utc if tz.upper() == "UTC" else ZoneInfo(tz)
    return tz


def _midnight(d: date, zone) -> datetime:
    return datetime.combine(d, time.min, tzinfo=zone)


def _add_months(d: date, months: int) -> date:
    month_index = d.month - 1 + months
    return date(d.year + month_index // 12, month_index % 12 + 1, 1)


def _daily_window(start_day: date, end_day: date, zone, period: ChartPeriod) -> Window:
    start = _midnight(start_day, zone)
    end = _midnight(end_day, zone)
    return Window(
        start=start,
        end=end,
        bucket_count=(end_day - start_day).days,
        bucket_size=ONE_DAY,
        period=period.value,
    )


def compute_window(
    reference_time: datetime,
    period: Union[str, ChartPeriod, None] = None,
    tz=None,
    week_start: Optional[int] = None,
) -> Window:
    """compute the half-open window containing reference_time for a period.
    start is aligned to the natural unit of the period; the day period uses
    hourly buckets, every other period daily buckets."""
    resolved = parse_period(period)
    if resolved is ChartPeriod.CUSTOM:
        raise InvalidPeriodError("custom periods need explicit bounds, use compute_custom_window")
    if reference_time.tzinfo is None:
        reference_time = reference_time.replace(tzinfo=timezone.utc)

    zone = resolve_zone(tz)
    day = reference_time.astimezone(zone).date()

    if resolved is ChartPeriod.DAY:
        start = _midnight(day, zone)
        return Window(
            start=start,
            end=_midnight(day + ONE_DAY, zone),
            bucket_count=24,
            bucket_size=ONE_HOUR,
            period=resolved.value,
        )

    if resolved is ChartPeriod.WEEK:
        first = settings.WEEK_START_DAY if week_start is None else week_start
        start_day = day - timedelta(days=(day.weekday() - first) % 7)
        return _daily_window(start_day, start_day + timedelta(days=7), zone, resolved)

    if resolved is ChartPeriod.MONTH:
        start_day = day.replace(day=1)
        return _daily_window(start_day, _add_months(start_day, 1), zone, resolved)

    if resolved is ChartPeriod.QUARTER:
        start_day = date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)
        return _daily_window(start_day, _add_months(start_day, 3), zone, resolved)

    if resolved is ChartPeriod.YEAR:
        return _daily_window(date(day.year, 1, 1), date(day.year + 1, 1, 1), zone, resolved)

    # rolling: n whole days ending with the reference day
    end_day = day + ONE_DAY
    return _daily_window(end_day - timedelta(days=ROLLING_DAYS[resolved]), end_day, zone, resolved)


def compute_custom_window(start: Union[date, datetime], end: Union[date, datetime], tz=None) -> Window:
    """day-aligned window over an explicit range; end is exclusive"""
    zone = resolve_zone(tz)
    start_day = start.astimezone(zone).date() if isinstance(start, datetime) else start
    end_day = end.astimezone(zone).date() if isinstance(end, datetime) else end
    if end_day <= start_day:
        raise InvalidPeriodError(f"{start_day}..{end_day}")
    return _daily_window(start_day, end_day, zone, ChartPeriod.CUSTOM)


def previous_window(window: Window) -> Window:
    """the immediately preceding window of equal length and bucket layout"""
    length = window.end - window.start
    return Window(
        start=window.start - length,
        end=window.start,
        bucket_count=window.bucket_count,
        bucket_size=window.bucket_size,
        period=window.period,
    )


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def window_offset(window: Window, ts: datetime) -> timedelta:
    """distance of ts from the window start.
    daily buckets measure local wall-clock time so a dst change never shifts a
    calendar day into its neighbour; hourly buckets measure absolute time."""
    ts = _aware(ts)
    if window.bucket_size >= ONE_DAY:
        local = ts.astimezone(window.start.tzinfo)
        return local.replace(tzinfo=None) - window.start.replace(tzinfo=None)
    return ts.astimezone(timezone.utc) - window.start.astimezone(timezone.utc)


def window_days(window: Window) -> int:
    """calendar days covered by the window, at least one"""
    return max(1, (window.end.date() - window.start.date()).days)


def elapsed_days(window: Window, cutoff: datetime) -> int:
    """local calendar days of the window that started before cutoff"""
    cutoff = _aware(cutoff)
    if cutoff <= window.start:
        return 0
    local = cutoff.astimezone(window.start.tzinfo).replace(tzinfo=None)
    return min(window_days(window), math.ceil((local - window.start.replace(tzinfo=None)) / ONE_DAY))


def elapsed_buckets(window: Window, cutoff: datetime) -> int:
    """buckets that started before cutoff"""
    if _aware(cutoff) <= window.start:
        return 0
    return min(window.bucket_count, math.ceil(window_offset(window, cutoff) / window.bucket_size))


def bucket_index(window: Window, ts: datetime) -> Optional[int]:
    """bucket holding ts, or None outside the window.
    a timestamp exactly on a bucket boundary belongs to the later bucket."""
    ts = _aware(ts)
    if not window.contains(ts):
        return None
    # the extra hour of a 25 hour dst day clips into the last hourly bucket
    return max(0, min(window_offset(window, ts) // window.bucket_size, window.bucket_count - 1))
