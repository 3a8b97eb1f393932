from datetime import date
from typing import Optional

from checkin.constants import (
    AGE_CUTOFF_DAY,
    AGE_CUTOFF_MONTH,
    PRESCHOOL_MAX_AGE,
    PRIMARY_MAX_AGE,
)
from checkin.exceptions import ConfigurationException
from checkin.supabase.columns import AgeBucket


def age_on(dob: date, cutoff: date) -> int:
    """Whole years of age on the cutoff date."""
    years = cutoff.year - dob.year
    if (cutoff.month, cutoff.day) < (dob.month, dob.day):
        years -= 1
    return years


def classify_age(dob: Optional[date], cutoff: date) -> AgeBucket:
    """
    Map a date of birth to an age bucket as of the cutoff date.

    Thresholds are inclusive upper bounds: up to PRESCHOOL_MAX_AGE is preschool,
    up to PRIMARY_MAX_AGE is primary, anything older is preteen. A missing date
    of birth falls back to the default bucket. Never raises.
    """
    if dob is None:
        return AgeBucket.default()

    age = age_on(dob, cutoff)

    if age <= PRESCHOOL_MAX_AGE:
        return AgeBucket.PRESCHOOL
    if age <= PRIMARY_MAX_AGE:
        return AgeBucket.PRIMARY
    return AgeBucket.PRETEEN


def parse_age_cutoff(value: Optional[str]) -> Optional[date]:
    """Parse AGE_CUTOFF_DATE. Unset means the cutoff follows the service year."""
    if value is None or isinstance(value, date):
        return value
    if not value.strip():
        return None

    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ConfigurationException(f"AGE_CUTOFF_DATE must be a date like 2025-06-30, got {value!r}.") from e


def get_age_cutoff(service_date: date, configured: Optional[date] = None) -> date:
    if configured:
        return configured

    return date(service_date.year, AGE_CUTOFF_MONTH, AGE_CUTOFF_DAY)
