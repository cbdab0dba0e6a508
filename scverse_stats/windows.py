"""Date-window thresholds used when counting recent activity."""

import calendar
from datetime import datetime, timezone


def parse_github_datetime(value: str) -> datetime:
    """Parse an ISO-8601 timestamp such as 2024-01-01T00:00:00Z (timezone-aware)."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def shift_months(moment: datetime, months: int) -> datetime:
    """
    Move ``moment`` by a number of calendar months (negative moves back).

    The day is clamped to the length of the target month, so March 31st
    minus one month is the last day of February.
    """
    total = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(total, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def months_ago(now: datetime, months: int) -> datetime:
    """The start of the same calendar day ``months`` months before ``now``."""
    shifted = shift_months(now, -months)
    if shifted.tzinfo is None:
        shifted = shifted.replace(tzinfo=timezone.utc)
    return shifted.replace(hour=0, minute=0, second=0, microsecond=0)


def one_month_ago(now: datetime | None = None) -> datetime:
    return months_ago(now or datetime.now(timezone.utc), 1)


def one_year_ago(now: datetime | None = None) -> datetime:
    return months_ago(now or datetime.now(timezone.utc), 12)
