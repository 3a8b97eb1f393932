import asyncio
from enum import Enum
from typing import Any, Callable, Optional

from checkin.exceptions import (
    CheckInException,
    ConflictException,
    GuardianRequiredException,
    InvalidTransitionException,
    NotAuthenticatedException,
)
from checkin.schemas import parse_model
from checkin.schemas.attendance import AttendanceRecordResponse, CheckOutResult, Roster
from checkin.schemas.child import ChildResponse
from checkin.schemas.guardian import GuardianCreate, GuardianResponse, LinkedGuardianResponse
from checkin.services import require_store
from checkin.services.attendance_service import AttendanceService
from checkin.services.child_service import ChildService
from checkin.services.guardian_service import GuardianService
from checkin.services.live_query import Generation, LiveQuery
from checkin.utils.date_utils import ServiceDateNavigator


class SessionState(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    CHILD_SELECTED = "child_selected"
    GUARDIAN_PENDING = "guardian_pending"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class SessionEvent(str, Enum):
    OPEN_CHECK_IN = "open_check_in"
    SELECT_CHILD = "select_child"
    GUARDIANS_MISSING = "guardians_missing"
    GUARDIAN_LINKED = "guardian_linked"
    CHECK_IN = "check_in"
    OPEN_CHECK_OUT = "open_check_out"
    CHECK_OUT = "check_out"
    CANCEL = "cancel"


TRANSITIONS = {
    (SessionState.IDLE, SessionEvent.OPEN_CHECK_IN): SessionState.SEARCHING,
    (SessionState.SEARCHING, SessionEvent.SELECT_CHILD): SessionState.CHILD_SELECTED,
    (SessionState.CHILD_SELECTED, SessionEvent.SELECT_CHILD): SessionState.CHILD_SELECTED,
    (SessionState.GUARDIAN_PENDING, SessionEvent.SELECT_CHILD): SessionState.CHILD_SELECTED,
    (SessionState.CHILD_SELECTED, SessionEvent.GUARDIANS_MISSING): SessionState.GUARDIAN_PENDING,
    (SessionState.CHILD_SELECTED, SessionEvent.GUARDIAN_LINKED): SessionState.CHILD_SELECTED,
    (SessionState.GUARDIAN_PENDING, SessionEvent.GUARDIAN_LINKED): SessionState.CHILD_SELECTED,
    (SessionState.CHILD_SELECTED, SessionEvent.CHECK_IN): SessionState.CHECKED_IN,
    (SessionState.GUARDIAN_PENDING, SessionEvent.CHECK_IN): SessionState.CHECKED_IN,
    (SessionState.IDLE, SessionEvent.OPEN_CHECK_OUT): SessionState.CHECKED_IN,
    (SessionState.CHECKED_IN, SessionEvent.GUARDIAN_LINKED): SessionState.CHECKED_IN,
    (SessionState.CHECKED_IN, SessionEvent.CHECK_OUT): SessionState.CHECKED_OUT,
}


def transition(state: SessionState, event: SessionEvent) -> SessionState:
    """Next state for `event`, or InvalidTransitionException. Cancel is always allowed."""
    if event == SessionEvent.CANCEL:
        return SessionState.IDLE

    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        action = event.value.replace("_", " ")
        raise InvalidTransitionException(f"Cannot {action} while {state.value.replace('_', ' ')}.")


class CheckInSession:
    """
    One volunteer's check-in desk.

    Drives the check-in and check-out workflow for the selected service date
    and keeps that date's roster current. Store calls run in worker threads.
    Each kind of load has its own generation counter so a late answer never
    overwrites a newer one, and a failed operation leaves the session exactly
    where it was, with `error` set for display.
    """

    def __init__(
        self,
        caller_id: Optional[str],
        child_service: ChildService,
        guardian_service: GuardianService,
        attendance_service: AttendanceService,
        navigator: ServiceDateNavigator,
    ):
        if not caller_id:
            raise NotAuthenticatedException("Sign in to continue.")

        self.caller_id = caller_id
        self.child_service = child_service
        self.guardian_service = guardian_service
        self.attendance_service = attendance_service
        self.navigator = navigator
        self.logger = attendance_service.app.logger

        self.state = SessionState.IDLE
        self.child: Optional[ChildResponse] = None
        self.guardians: list[LinkedGuardianResponse] = []
        self.checkout_record: Optional[AttendanceRecordResponse] = None
        self.last_record: Optional[AttendanceRecordResponse] = None
        self.roster: Optional[Roster] = None
        self.error: Optional[str] = None

        self.child_search: LiveQuery[ChildResponse] = LiveQuery(self._fetch_children)
        self.guardian_search: LiveQuery[GuardianResponse] = LiveQuery(self._fetch_guardians)
        self._guardian_load = Generation()
        self._roster_load = Generation()
        self._submit = Generation()

    @classmethod
    def start(cls, app, caller_id: Optional[str]) -> "CheckInSession":
        require_store(app)
        navigator = ServiceDateNavigator(
            weekday=app.config["SERVICE_WEEKDAY"],
            business_timezone=app.config["BUSINESS_TIMEZONE"],
        )
        return cls(caller_id, app.child_service, app.guardian_service, app.attendance_service, navigator)

    @property
    def service_date(self):
        return self.navigator.selected

    # --- Workflow ---

    def cancel(self):
        self.state = transition(self.state, SessionEvent.CANCEL)
        self.child = None
        self.guardians = []
        self.checkout_record = None
        self.error = None
        self.child_search.clear()
        self.guardian_search.clear()
        self._guardian_load.advance()
        self._submit.advance()

    def open_check_in(self):
        self.cancel()
        self.state = transition(self.state, SessionEvent.OPEN_CHECK_IN)

    async def search_children(self, term: Optional[str]) -> list[ChildResponse]:
        if self.state != SessionState.SEARCHING:
            raise InvalidTransitionException("Open the check-in flow before searching for a child.")

        await self.child_search.search(term)
        return self.child_search.results

    async def select_child(self, child: ChildResponse) -> bool:
        """Pick a child and load their guardians. Returns False if superseded."""
        transition(self.state, SessionEvent.SELECT_CHILD)

        guardians, current = await self._load(self._guardian_load, self.guardian_service.active_guardians_for, child.id)
        if not current:
            return False

        self.state = transition(self.state, SessionEvent.SELECT_CHILD)
        self.child = child
        self.guardians = guardians
        self.error = None
        self.guardian_search.clear()
        if not guardians:
            self.state = transition(self.state, SessionEvent.GUARDIANS_MISSING)

        return True

    async def search_guardians(self, term: Optional[str]) -> list[GuardianResponse]:
        self._require_child_context()
        await self.guardian_search.search(term)
        return self.guardian_search.results

    async def link_guardian(self, guardian_id: str, relationship: Optional[str] = None) -> list[LinkedGuardianResponse]:
        child_id = self._require_child_context()
        transition(self.state, SessionEvent.GUARDIAN_LINKED)

        await self._call(self.guardian_service.link_to_child, child_id, guardian_id, relationship)
        guardians, current = await self._load(self._guardian_load, self.guardian_service.active_guardians_for, child_id)
        if current:
            self.guardians = guardians
            self.state = transition(self.state, SessionEvent.GUARDIAN_LINKED)
            self.guardian_search.clear()
            self.error = None

        return self.guardians

    async def create_and_link_guardian(self, profile: Any, relationship: Optional[str] = None) -> GuardianResponse:
        self._require_child_context()
        try:
            profile = parse_model(GuardianCreate, profile)
        except CheckInException as e:
            self.error = e.message
            raise

        guardian = await self._call(self.guardian_service.create, profile)
        await self.link_guardian(guardian.id, relationship)
        return guardian

    async def check_in(self, guardian_id: str) -> AttendanceRecordResponse:
        transition(self.state, SessionEvent.CHECK_IN)
        if not self.guardians:
            self.error = "Link a guardian to this child before checking in."
            raise GuardianRequiredException(self.error)

        record, current = await self._write(
            self.attendance_service.check_in, self.child.id, guardian_id, self.service_date
        )

        self.last_record = record
        if current:
            self.state = transition(self.state, SessionEvent.CHECK_IN)
            self.cancel()
        else:
            self.logger.info(f"Check-in {record.id} committed after the workflow was cancelled")
        await self._refresh_after_write()
        return record

    async def open_check_out(self, attendance_id: str) -> bool:
        """Start checking out an open record. Returns False if superseded."""
        transition(self.state, SessionEvent.OPEN_CHECK_OUT)

        token = self._guardian_load.advance()
        record = await self._call(self.attendance_service.get_record, attendance_id)
        if not record.is_open:
            self.error = "That child has already been checked out."
            raise ConflictException(self.error)

        guardians = await self._call(self.guardian_service.active_guardians_for, record.child_id)
        if not self._guardian_load.is_current(token):
            return False

        self.state = transition(self.state, SessionEvent.OPEN_CHECK_OUT)
        self.checkout_record = record
        self.guardians = guardians
        self.error = None
        return True

    async def check_out(self, guardian_id: str) -> CheckOutResult:
        transition(self.state, SessionEvent.CHECK_OUT)

        result, current = await self._write(self.attendance_service.check_out, self.checkout_record.id, guardian_id)

        self.last_record = result.record
        if current:
            self.state = transition(self.state, SessionEvent.CHECK_OUT)
            self.cancel()
        else:
            self.logger.info(f"Check-out {result.record.id} committed after the workflow was cancelled")
        await self._refresh_after_write()
        return result

    # --- Service date navigation ---

    async def next_week(self) -> Optional[Roster]:
        self.navigator.next()
        return await self.refresh_roster()

    async def previous_week(self) -> Optional[Roster]:
        self.navigator.previous()
        return await self.refresh_roster()

    async def today(self) -> Optional[Roster]:
        self.navigator.today()
        return await self.refresh_roster()

    async def select_date(self, service_date) -> Optional[Roster]:
        try:
            self.navigator.select(service_date)
        except CheckInException as e:
            self.error = e.message
            raise
        return await self.refresh_roster()

    async def refresh_roster(self) -> Optional[Roster]:
        roster, current = await self._load(self._roster_load, self.attendance_service.roster, self.service_date)
        if not current:
            return None

        self.roster = roster
        return roster

    # --- Helpers ---

    def _require_child_context(self) -> str:
        if self.state in (SessionState.CHILD_SELECTED, SessionState.GUARDIAN_PENDING) and self.child is not None:
            return self.child.id
        if self.state == SessionState.CHECKED_IN and self.checkout_record is not None:
            return self.checkout_record.child_id

        raise InvalidTransitionException("Select a child before managing guardians.")

    async def _call(self, func: Callable, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except CheckInException as e:
            self.error = e.message
            raise

    async def _load(self, generation: Generation, func: Callable, *args) -> tuple[Any, bool]:
        token = generation.advance()
        try:
            result = await asyncio.to_thread(func, *args)
        except CheckInException as e:
            if not generation.is_current(token):
                self.logger.debug(f"Ignoring failure of a superseded load: {e.message}")
                return None, False
            self.error = e.message
            raise

        return result, generation.is_current(token)

    async def _write(self, func: Callable, *args) -> tuple[Any, bool]:
        """Run a write. It stands even when cancelled; `current` is False in that case."""
        token = self._submit.advance()
        try:
            result = await asyncio.to_thread(func, *args)
        except CheckInException as e:
            if self._submit.is_current(token):
                self.error = e.message
            raise

        return result, self._submit.is_current(token)

    async def _refresh_after_write(self):
        try:
            await self.refresh_roster()
        except CheckInException as e:
            self.logger.warning(f"Roster refresh after write failed: {e.message}")
            self.error = e.message

    async def _fetch_children(self, term: str) -> list[ChildResponse]:
        return await asyncio.to_thread(self.child_service.search, term)

    async def _fetch_guardians(self, term: str) -> list[GuardianResponse]:
        exclude_ids = [guardian.id for guardian in self.guardians]
        return await asyncio.to_thread(self.guardian_service.search, term, exclude_ids)
