from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from checkin.schemas import blank_to_none, require_text
from checkin.supabase.columns import ApprovalMethod


class GuardianCreate(BaseModel):
    model_config = ConfigDict(validate_default=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    approved_by_name: Optional[str] = None
    approved_by_method: ApprovalMethod = ApprovalMethod.IN_PERSON

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, value):
        return require_text(value, "First name")

    @field_validator("phone")
    @classmethod
    def phone_required(cls, value):
        return require_text(value, "Phone (used to prevent duplicates)")

    @field_validator("last_name", "approved_by_name")
    @classmethod
    def strip_optional(cls, value):
        return blank_to_none(value)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class GuardianUpdate(BaseModel):
    model_config = ConfigDict(validate_default=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, value):
        return require_text(value, "First name")

    @field_validator("last_name")
    @classmethod
    def last_name_required(cls, value):
        return require_text(value, "Last name")

    @field_validator("phone")
    @classmethod
    def phone_required(cls, value):
        return require_text(value, "Phone")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class GuardianResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    approved_by_name: Optional[str] = None
    approved_by_method: Optional[ApprovalMethod] = None
    approved_at: Optional[datetime] = None
    active: bool = True


class LinkedGuardianResponse(GuardianResponse):
    relationship: Optional[str] = None


class LinkRequest(BaseModel):
    guardian_id: str
    relationship: Optional[str] = None

    @field_validator("relationship")
    @classmethod
    def strip_relationship(cls, value):
        return blank_to_none(value)


class ChildGuardianLinkResponse(BaseModel):
    id: str
    child_id: str
    guardian_id: str
    relationship: Optional[str] = None
    active: bool = True
