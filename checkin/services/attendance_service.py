"""
Attendance lifecycle: check-in, check-out and the per-service-date roster.

Every rule is re-verified against the store when the write happens, never at
selection time, and the unique index on (child_id, service_date) stays the
final word on duplicate check-ins.
"""

from datetime import date, timedelta
from typing import Optional

from flask import current_app

from checkin.constants import BIRTHDAY_WINDOW_DAYS, SERVICE_WEEKDAY, UNKNOWN_CHILD
from checkin.exceptions import (
    AlreadyCheckedInException,
    GuardianNotAuthorizedException,
    GuardianRequiredException,
    NotFoundException,
    UniqueViolation,
    ValidationException,
)
from checkin.schemas.attendance import (
    Allergen,
    AllergiesInPlay,
    AttendanceRecordResponse,
    Birthday,
    CheckOutResult,
    ChildAllergies,
    Roster,
    RosterEntry,
    RosterGroup,
)
from checkin.schemas.guardian import LinkedGuardianResponse
from checkin.services.child_service import ChildService
from checkin.services.guardian_service import GuardianService
from checkin.supabase.columns import AgeBucket
from checkin.supabase.gateway import RecordStore
from checkin.supabase.helpers import cols, format_name, set_columns_if_null, utc_now_iso
from checkin.supabase.tables import Attendance, Child, Guardian
from checkin.utils.age_buckets import classify_age, get_age_cutoff, parse_age_cutoff
from checkin.utils.date_utils import ensure_service_date

ATTENDANCE_COLUMNS = cols(
    Attendance.ID,
    Attendance.CHILD_ID,
    Attendance.SERVICE_DATE,
    Attendance.AGE_BUCKET,
    Attendance.CHECKED_IN_AT,
    Attendance.CHECKED_IN_BY,
    Attendance.CHECKED_OUT_AT,
    Attendance.CHECKED_OUT_BY,
)
ROSTER_COLUMNS = cols(
    Attendance.ID,
    Attendance.CHILD_ID,
    Attendance.SERVICE_DATE,
    Attendance.AGE_BUCKET,
    Attendance.CHECKED_IN_AT,
    Attendance.CHECKED_IN_BY,
    Attendance.CHECKED_OUT_AT,
    Attendance.CHECKED_OUT_BY,
    Child.join(
        Child.ID,
        Child.FIRST_NAME,
        Child.LAST_NAME,
        Child.DATE_OF_BIRTH,
        Child.ALLERGIES,
        Child.MEDICAL_NOTES,
    ),
)


def parse_allergens(raw: str) -> list[Allergen]:
    return [Allergen(key=label.lower(), label=label) for label in (part.strip() for part in raw.split(",")) if label]


class AttendanceService:
    def __init__(
        self,
        store: RecordStore,
        child_service: ChildService,
        guardian_service: GuardianService,
        app=None,
    ):
        self.store = store
        self.child_service = child_service
        self.guardian_service = guardian_service
        self.app = app or current_app
        self.weekday = self.app.config.get("SERVICE_WEEKDAY", SERVICE_WEEKDAY)
        self.age_cutoff = parse_age_cutoff(self.app.config.get("AGE_CUTOFF_DATE"))

    def get_record(self, attendance_id: str) -> AttendanceRecordResponse:
        row = self.store.execute_one(Attendance.select_by_id(self.store, ATTENDANCE_COLUMNS, attendance_id))
        if row is None:
            raise NotFoundException(f"Attendance record {attendance_id} not found.")

        return AttendanceRecordResponse.model_validate(row)

    def find_record(self, child_id: str, service_date: date) -> Optional[AttendanceRecordResponse]:
        row = self.store.execute_one(
            Attendance.select_by_service_date(self.store, ATTENDANCE_COLUMNS, service_date)
            .eq(Attendance.CHILD_ID, child_id)
            .limit(1)
        )
        if row is None:
            return None

        return AttendanceRecordResponse.model_validate(row)

    def authorized_guardian(self, child_id: str, guardian_id: str) -> LinkedGuardianResponse:
        guardians = self.guardian_service.active_guardians_for(child_id)
        if not guardians:
            raise GuardianRequiredException("Link a guardian to this child before continuing.")

        for guardian in guardians:
            if guardian.id == guardian_id:
                return guardian

        self.app.logger.warning(f"Guardian {guardian_id} is not authorized for child {child_id}")
        raise GuardianNotAuthorizedException("That guardian is not authorized for this child.")

    def check_in(self, child_id: str, guardian_id: str, service_date: date) -> AttendanceRecordResponse:
        ensure_service_date(service_date, self.weekday)

        child = self.child_service.get(child_id)
        if not child.active:
            raise ValidationException(f"{child.first_name} {child.last_name} is no longer active.")

        self.authorized_guardian(child_id, guardian_id)

        child_name = f"{child.first_name} {child.last_name}"
        if self.find_record(child_id, service_date) is not None:
            self.app.logger.warning(f"Rejected second check-in for child {child_id} on {service_date}")
            raise AlreadyCheckedInException(f"{child_name} is already checked in for {service_date.isoformat()}.")

        age_bucket = classify_age(child.dob, get_age_cutoff(service_date, self.age_cutoff))
        payload = {
            Attendance.CHILD_ID: child_id,
            Attendance.SERVICE_DATE: service_date.isoformat(),
            Attendance.AGE_BUCKET: age_bucket.value,
            Attendance.CHECKED_IN_AT: utc_now_iso(),
            Attendance.CHECKED_IN_BY: guardian_id,
            Attendance.CHECKED_OUT_AT: None,
            Attendance.CHECKED_OUT_BY: None,
        }

        try:
            rows = self.store.execute(Attendance.query(self.store).insert(payload))
        except UniqueViolation as e:
            self.app.logger.warning(f"Concurrent check-in for child {child_id} on {service_date} rejected by the store")
            raise AlreadyCheckedInException(
                f"{child_name} is already checked in for {service_date.isoformat()}."
            ) from e

        record = AttendanceRecordResponse.model_validate(rows[0])
        self.app.logger.info(
            f"Checked in child {child_id} for {service_date} as {age_bucket.value} by guardian {guardian_id}"
        )
        return record

    def check_out(self, attendance_id: str, guardian_id: str) -> CheckOutResult:
        """
        Close an open record. A record that is already closed is left untouched
        and reported back with `already_checked_out` set.
        """
        record = self.get_record(attendance_id)
        if not record.is_open:
            self.app.logger.info(f"Attendance {attendance_id} was already checked out")
            return CheckOutResult(record=record, already_checked_out=True)

        self.authorized_guardian(record.child_id, guardian_id)

        rows = set_columns_if_null(
            self.store,
            Attendance,
            attendance_id,
            Attendance.CHECKED_OUT_AT,
            {
                Attendance.CHECKED_OUT_AT: utc_now_iso(),
                Attendance.CHECKED_OUT_BY: guardian_id,
            },
        )
        if len(rows) == 0:
            self.app.logger.info(f"Attendance {attendance_id} was closed by someone else first")
            return CheckOutResult(record=self.get_record(attendance_id), already_checked_out=True)

        self.app.logger.info(f"Checked out child {record.child_id} ({attendance_id}) with guardian {guardian_id}")
        return CheckOutResult(record=AttendanceRecordResponse.model_validate(rows[0]))

    def roster(self, service_date: date) -> Roster:
        """
        Everyone with a record on the service date, open and closed, grouped by
        the age bucket frozen at check-in and ordered by check-in time.
        """
        ensure_service_date(service_date, self.weekday)

        rows = self.store.execute(Attendance.select_by_service_date(self.store, ROSTER_COLUMNS, service_date))

        guardian_ids = set()
        for row in rows:
            guardian_ids.update((Attendance.CHECKED_IN_BY(row), Attendance.CHECKED_OUT_BY(row)))
        guardians = self.guardian_service.get_many(guardian_id for guardian_id in guardian_ids if guardian_id)

        groups: dict[AgeBucket, list[RosterEntry]] = {bucket: [] for bucket in AgeBucket.display_order()}
        for row in rows:
            entry = self._roster_entry(row, guardians)
            groups[entry.age_bucket].append(entry)

        for entries in groups.values():
            entries.sort(key=lambda entry: entry.checked_in_at)

        present_count = sum(1 for row in rows if Attendance.CHECKED_OUT_AT(row) is None)
        return Roster(
            service_date=service_date,
            groups=[RosterGroup(age_bucket=bucket, entries=entries) for bucket, entries in groups.items()],
            present_count=present_count,
            checked_out_count=len(rows) - present_count,
            total_count=len(rows),
        )

    def _roster_entry(self, row: dict, guardians: dict[str, dict]) -> RosterEntry:
        child = Child.unwrap_one(row)

        checked_in_by = guardians.get(Attendance.CHECKED_IN_BY(row))
        checked_out_by = guardians.get(Attendance.CHECKED_OUT_BY(row))

        return RosterEntry(
            attendance_id=Attendance.ID(row),
            child_id=Attendance.CHILD_ID(row),
            child_name=format_name(child, default=UNKNOWN_CHILD),
            child_found=child is not None,
            dob=Child.DATE_OF_BIRTH(child) if child else None,
            age_bucket=Attendance.AGE_BUCKET(row) or AgeBucket.default(),
            allergies=Child.ALLERGIES(child) if child else None,
            medical_notes=Child.MEDICAL_NOTES(child) if child else None,
            checked_in_at=Attendance.CHECKED_IN_AT(row),
            checked_in_by=Guardian.FULL_NAME(checked_in_by) if checked_in_by else None,
            checked_out_at=Attendance.CHECKED_OUT_AT(row),
            checked_out_by=Guardian.FULL_NAME(checked_out_by) if checked_out_by else None,
            is_open=Attendance.CHECKED_OUT_AT(row) is None,
        )

    def allergies_in_play(self, service_date: date) -> AllergiesInPlay:
        allergen_labels: dict[str, str] = {}
        children: list[ChildAllergies] = []

        for entry in self.roster(service_date).entries:
            raw = (entry.allergies or "").strip()
            if not raw:
                continue

            allergens = parse_allergens(raw)
            for allergen in allergens:
                allergen_labels.setdefault(allergen.key, allergen.label)

            children.append(
                ChildAllergies(child_id=entry.child_id, name=entry.child_name, allergies=raw, allergens=allergens)
            )

        children.sort(key=lambda child: child.name.lower())
        allergens = sorted(
            (Allergen(key=key, label=label) for key, label in allergen_labels.items()),
            key=lambda allergen: allergen.label.lower(),
        )
        return AllergiesInPlay(service_date=service_date, allergens=allergens, children=children)

    def birthdays(self, service_date: date) -> list[Birthday]:
        """Children on the roster whose birthday fell in the week ending on the service date."""
        window = [service_date - timedelta(days=offset) for offset in range(BIRTHDAY_WINDOW_DAYS - 1, -1, -1)]

        birthdays: dict[str, Birthday] = {}
        for entry in self.roster(service_date).entries:
            if entry.dob is None or entry.child_id in birthdays:
                continue

            for day in window:
                if (entry.dob.month, entry.dob.day) == (day.month, day.day):
                    birthdays[entry.child_id] = Birthday(
                        child_id=entry.child_id, name=entry.child_name, dob=entry.dob, matched_date=day
                    )
                    break

        return sorted(birthdays.values(), key=lambda birthday: birthday.matched_date)
