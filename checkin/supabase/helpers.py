from datetime import datetime, timezone
from typing import Optional

from checkin.constants import UNIQUE_VIOLATION_CODE, UNKNOWN
from checkin.supabase.columns import Column


def cols(*args: Column):
    if len(args) == 0:
        return "*"

    return ", ".join([str(a) for a in args])


def one_or_none(value) -> Optional[dict]:
    """
    Normalize a related record that may arrive as a dict, a list of zero or one
    dicts, or None into a single dict or None.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        return value
    if len(value) == 0:
        return None
    return value[0]


FIRST_NAME_COLUMN = Column("first_name")
LAST_NAME_COLUMN = Column("last_name")


def format_name(data: Optional[dict], default: str = UNKNOWN) -> str:
    if data is None:
        return default

    first_name = FIRST_NAME_COLUMN(data)
    last_name = LAST_NAME_COLUMN(data)

    if first_name is None:
        return default
    if not last_name:
        return first_name

    return f"{first_name} {last_name}"


def ilike_pattern(term: str) -> str:
    """
    Build a substring pattern for an ilike filter. LIKE wildcards typed by the
    user are matched literally, and characters that would break a PostgREST
    `or` filter are dropped.
    """
    escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    for char in ',()"':
        escaped = escaped.replace(char, "")
    return f"%{escaped}%"


def is_unique_violation(error) -> bool:
    if getattr(error, "code", None) == UNIQUE_VIOLATION_CODE:
        return True

    message = f"{getattr(error, 'message', '') or ''} {getattr(error, 'details', '') or ''}".lower()
    return "duplicate" in message and "unique" in message


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def set_columns_if_null(store, table_class, id_column_value: str, guard_column, values: dict):
    """
    Update a row only while one of its columns is still null.

    This is how "happens once" events are recorded, for example closing an
    attendance record at checkout. Returns the updated rows, which is empty when
    the guard column had already been set.

    Example:
        set_columns_if_null(store, Attendance, attendance_id, Attendance.CHECKED_OUT_AT, {...})
    """
    return store.execute(
        table_class.query(store).update(values).eq(table_class.ID, id_column_value).is_(guard_column, "null")
    )
