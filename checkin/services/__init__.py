from typing import Optional

from flask import Flask, current_app

from checkin.exceptions import StoreNotConfiguredException
from checkin.services.attendance_service import AttendanceService
from checkin.services.child_service import ChildService
from checkin.services.guardian_service import GuardianService
from checkin.supabase.gateway import RecordStore


def init_services(app: Flask, store: Optional[RecordStore]):
    """Attach the record store and the services built on it to the app."""
    app.record_store = store
    if store is None:
        app.child_service = None
        app.guardian_service = None
        app.attendance_service = None
        return

    app.child_service = ChildService(store, app)
    app.guardian_service = GuardianService(store, app)
    app.attendance_service = AttendanceService(store, app.child_service, app.guardian_service, app)


def require_store(app: Optional[Flask] = None) -> RecordStore:
    app = app or current_app
    store = getattr(app, "record_store", None)
    if store is None:
        raise StoreNotConfiguredException("SUPABASE_URL and SUPABASE_KEY must be set to use the record store.")
    return store


def get_child_service() -> ChildService:
    require_store()
    return current_app.child_service


def get_guardian_service() -> GuardianService:
    require_store()
    return current_app.guardian_service


def get_attendance_service() -> AttendanceService:
    require_store()
    return current_app.attendance_service


def start_session(caller_id: Optional[str], app: Optional[Flask] = None):
    """Open a check-in desk session for the signed-in caller."""
    from checkin.services.session import CheckInSession

    return CheckInSession.start(app or current_app, caller_id)
