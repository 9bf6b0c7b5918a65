"""
Dashboard metrics calculation.
All metrics are computed on-the-fly, never stored in DB.
"""
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum as PyEnum
from typing import Optional

from config import TIMEZONE
from errors import ValidationError
from schemas import DashboardStat, DashboardSummary, DateRange

TWO_PLACES = Decimal("0.01")
ONE_PLACE = Decimal("0.1")


class Period(str, PyEnum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    LAST_WEEK = "lastWeek"
    LAST_MONTH = "lastMonth"
    CUSTOM = "custom"


class GroupBy(str, PyEnum):
    PROJECT = "project"
    DAY = "day"
    CATEGORY = "category"
    MEMBER = "member"


def today_local() -> date:
    """Current date in the configured timezone."""
    return datetime.now(TIMEZONE).date()


def week_bounds(day: date) -> tuple[date, date]:
    """Monday of the week containing day, and the following Monday."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=7)


def month_bounds(day: date) -> tuple[date, date]:
    """First day of day's month, and the first day of the next month."""
    start = day.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


def parse_period(value: Optional[str], default: Period = Period.TODAY) -> Period:
    if not value:
        return default
    try:
        return Period(value)
    except ValueError:
        allowed = ", ".join(p.value for p in Period)
        raise ValidationError(
            "Invalid query parameters",
            details=[{"field": "period", "message": f"Period must be one of: {allowed}"}],
        )


def resolve_period(
    period: Period,
    today: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> tuple[date, date]:
    """
    Translate a period shorthand into a half-open [start, end) window.

    Args:
        period: Period shorthand
        today: Reference date
        start_date: Inclusive start (custom only)
        end_date: Inclusive end (custom only)

    Returns:
        (start, end) with end exclusive

    Raises:
        ValidationError: custom without both dates
    """
    if period == Period.TODAY:
        return today, today + timedelta(days=1)
    if period == Period.WEEK:
        return week_bounds(today)
    if period == Period.MONTH:
        return month_bounds(today)
    if period == Period.LAST_WEEK:
        return week_bounds(today - timedelta(days=7))
    if period == Period.LAST_MONTH:
        this_month_start, _ = month_bounds(today)
        return month_bounds(this_month_start - timedelta(days=1))

    # custom
    if start_date is None or end_date is None:
        raise ValidationError("Start and end dates are required for custom period")
    return start_date, end_date + timedelta(days=1)


def window_to_range(window: tuple[date, date], current: Optional[DateRange] = None) -> DateRange:
    """
    Convert a [start, end) window into an inclusive DateRange,
    narrowed by any range already present on the filter.

    Raises:
        ValidationError: The filter range lies entirely outside the window
    """
    start, end = window[0], window[1] - timedelta(days=1)
    if current is not None:
        if current.start is not None and current.start > start:
            start = current.start
        if current.end is not None and current.end < end:
            end = current.end
    if start > end:
        raise ValidationError(
            "Invalid query parameters",
            details=[{"field": "startDate", "message": "Date range does not overlap the selected period"}],
        )
    return DateRange(start=start, end=end)


def dashboard_range(period: Period, today: date, current: Optional[DateRange] = None) -> DateRange:
    """
    Inclusive date range a dashboard reports on.

    custom takes its bounds from the filter range; every other period is
    narrowed by it.
    """
    if period == Period.CUSTOM:
        window = resolve_period(
            period,
            today,
            current.start if current else None,
            current.end if current else None,
        )
        return window_to_range(window)
    return window_to_range(resolve_period(period, today), current)


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def format_hours(value) -> str:
    """
    Format summed hours as a 2-decimal string.

    Examples:
        None -> "0.00"
        7.5  -> "7.50"
    """
    return str(to_decimal(value).quantize(TWO_PLACES))


def percentage(part: Decimal, total: Decimal) -> float:
    """Share of total in percent, one decimal place; 0 when total is 0."""
    if not total:
        return 0.0
    return float((part * 100 / total).quantize(ONE_PLACE, rounding=ROUND_HALF_UP))


def summarize(rows: list[tuple]) -> DashboardSummary:
    """Period totals over grouped rows; every log sits in exactly one group."""
    total = sum((to_decimal(hours) for _, _, hours, _ in rows), Decimal("0"))
    return DashboardSummary(total_hours=format_hours(total), count=sum(count for _, _, _, count in rows))


def average_hours(total_hours: str, member_count: int) -> str:
    """Hours per member, one decimal place."""
    if member_count <= 0:
        return "0.0"
    return str((Decimal(total_hours) / member_count).quantize(ONE_PLACE, rounding=ROUND_HALF_UP))


def build_stats(rows: list[tuple]) -> list[DashboardStat]:
    """Turn (key, label, total_hours, count) rows into DashboardStat items."""
    total = sum((to_decimal(hours) for _, _, hours, _ in rows), Decimal("0"))
    return [
        DashboardStat(
            key=key,
            label=label,
            total_hours=format_hours(hours),
            count=count,
            percentage=percentage(to_decimal(hours), total),
        )
        for key, label, hours, count in rows
    ]
