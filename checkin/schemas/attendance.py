from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from checkin.supabase.columns import AgeBucket


class CheckInRequest(BaseModel):
    child_id: str
    guardian_id: str


class CheckOutRequest(BaseModel):
    guardian_id: str


class AttendanceRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    child_id: str
    service_date: date
    age_bucket: AgeBucket
    checked_in_at: datetime
    checked_in_by_guardian_id: Optional[str] = None
    checked_out_at: Optional[datetime] = None
    checked_out_by_guardian_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.checked_out_at is None


class CheckOutResult(BaseModel):
    record: AttendanceRecordResponse
    already_checked_out: bool = False


class RosterEntry(BaseModel):
    attendance_id: str
    child_id: str
    child_name: str
    child_found: bool
    dob: Optional[date] = None
    age_bucket: AgeBucket
    allergies: Optional[str] = None
    medical_notes: Optional[str] = None
    checked_in_at: datetime
    checked_in_by: Optional[str] = None
    checked_out_at: Optional[datetime] = None
    checked_out_by: Optional[str] = None
    is_open: bool


class RosterGroup(BaseModel):
    age_bucket: AgeBucket
    entries: list[RosterEntry]


class Roster(BaseModel):
    service_date: date
    groups: list[RosterGroup]
    present_count: int
    checked_out_count: int
    total_count: int

    def group(self, bucket: AgeBucket) -> RosterGroup:
        for group in self.groups:
            if group.age_bucket == bucket:
                return group
        raise KeyError(bucket)

    @property
    def entries(self) -> list[RosterEntry]:
        return [entry for group in self.groups for entry in group.entries]


class Allergen(BaseModel):
    key: str
    label: str


class ChildAllergies(BaseModel):
    child_id: str
    name: str
    allergies: str
    allergens: list[Allergen]


class AllergiesInPlay(BaseModel):
    service_date: date
    allergens: list[Allergen]
    children: list[ChildAllergies]


class Birthday(BaseModel):
    child_id: str
    name: str
    dob: date
    matched_date: date
