from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from checkin.schemas import blank_to_none, require_text


class ChildNotes(BaseModel):
    allergies: Optional[str] = None
    medical_notes: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("allergies", "medical_notes", "notes")
    @classmethod
    def strip_notes(cls, value):
        return blank_to_none(value)


class ChildCreate(ChildNotes):
    model_config = ConfigDict(validate_default=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    dob: Optional[date] = None

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, value):
        return require_text(value, "First name")

    @field_validator("last_name")
    @classmethod
    def last_name_required(cls, value):
        return require_text(value, "Last name")

    @field_validator("dob")
    @classmethod
    def dob_required(cls, value):
        if value is None:
            raise ValueError("Date of birth is required.")
        return value


class ChildUpdate(ChildNotes):
    """Partial edit. Only fields present in the payload are written."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    dob: Optional[date] = None

    @field_validator("first_name")
    @classmethod
    def first_name_not_blank(cls, value):
        return require_text(value, "First name")

    @field_validator("last_name")
    @classmethod
    def last_name_not_blank(cls, value):
        return require_text(value, "Last name")


class ChildResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: Optional[str] = None
    dob: Optional[date] = None
    allergies: Optional[str] = None
    medical_notes: Optional[str] = None
    notes: Optional[str] = None
    active: bool = True
    created_at: Optional[datetime] = None
