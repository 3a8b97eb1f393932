import zoneinfo
from datetime import date, datetime, timedelta
from typing import Optional

from checkin.constants import BUSINESS_TIMEZONE, DAYS_PER_WEEK, SERVICE_WEEKDAY
from checkin.exceptions import ValidationException


def get_business_today(business_timezone: str = BUSINESS_TIMEZONE) -> date:
    business_tz = zoneinfo.ZoneInfo(business_timezone)
    return datetime.now(business_tz).date()


def is_service_date(target_date: date, weekday: int = SERVICE_WEEKDAY) -> bool:
    return target_date.weekday() == weekday


def get_service_date_on_or_after(from_date: date, weekday: int = SERVICE_WEEKDAY) -> date:
    """The first service date on or after `from_date` (the date itself when it is a service day)."""
    days_ahead = (weekday - from_date.weekday()) % DAYS_PER_WEEK
    return from_date + timedelta(days=days_ahead)


def get_current_service_date(
    weekday: int = SERVICE_WEEKDAY, business_timezone: str = BUSINESS_TIMEZONE, today: Optional[date] = None
) -> date:
    if today is None:
        today = get_business_today(business_timezone)

    return get_service_date_on_or_after(today, weekday)


def get_relative_service_date(weeks_till: int, from_date: date, weekday: int = SERVICE_WEEKDAY) -> date:
    """Get a service date relative to another service date.

    Args:
        weeks_till: Number of weeks to move (negative for past, positive for future)
        from_date: The currently selected service date
        weekday: The service weekday

    Returns:
        The service date `weeks_till` weeks away

    Examples:
        get_relative_service_date(1, date(2025, 6, 8))   # 2025-06-15
        get_relative_service_date(-1, date(2025, 6, 8))  # 2025-06-01
    """
    ensure_service_date(from_date, weekday)
    return from_date + timedelta(days=DAYS_PER_WEEK * weeks_till)


def ensure_service_date(target_date: date, weekday: int = SERVICE_WEEKDAY) -> date:
    if not is_service_date(target_date, weekday):
        raise ValidationException(f"{target_date.isoformat()} is not a service date ({target_date.strftime('%A')}).")
    return target_date


def parse_service_date(value: str, weekday: int = SERVICE_WEEKDAY) -> date:
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationException(f"Invalid date '{value}', expected YYYY-MM-DD.")

    return ensure_service_date(parsed, weekday)


class ServiceDateNavigator:
    """Keeps the selected service date and only ever moves it a whole week at a time."""

    def __init__(
        self,
        weekday: int = SERVICE_WEEKDAY,
        business_timezone: str = BUSINESS_TIMEZONE,
        selected: Optional[date] = None,
    ):
        self.weekday = weekday
        self.business_timezone = business_timezone
        if selected is None:
            selected = get_current_service_date(weekday, business_timezone)
        self.selected = ensure_service_date(selected, weekday)

    def next(self) -> date:
        self.selected = get_relative_service_date(1, self.selected, self.weekday)
        return self.selected

    def previous(self) -> date:
        self.selected = get_relative_service_date(-1, self.selected, self.weekday)
        return self.selected

    def select(self, target_date: date) -> date:
        self.selected = ensure_service_date(target_date, self.weekday)
        return self.selected

    def today(self) -> date:
        self.selected = get_current_service_date(self.weekday, self.business_timezone)
        return self.selected
