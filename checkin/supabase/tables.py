from postgrest import SyncRequestBuilder, SyncSelectRequestBuilder

from checkin.supabase.columns import (
    AgeBucket,
    ApprovalMethod,
    Column,
    date_column,
    datetime_column,
    enum_column,
)
from checkin.supabase.helpers import cols, one_or_none


class Table:
    TABLE_NAME = ""
    ID = Column("id")
    ACTIVE = Column("active", bool)

    @classmethod
    def query(cls, store) -> SyncRequestBuilder:
        return store.table(cls.TABLE_NAME)

    @classmethod
    def join(cls, *columns: str):
        return f"{cls.TABLE_NAME}({cols(*columns)})"

    @classmethod
    def select_by_id(cls, store, columns: str, id: str) -> SyncSelectRequestBuilder:
        return cls.query(store).select(columns).eq(cls.ID, id).limit(1)

    @classmethod
    def select_active(cls, store, columns: str) -> SyncSelectRequestBuilder:
        return cls.query(store).select(columns).eq(cls.ACTIVE, True)

    @classmethod
    def unwrap_one(cls, data: dict):
        """The single embedded row of this table on a joined result, or None."""
        return one_or_none(data.get(cls.TABLE_NAME))


class Child(Table):
    TABLE_NAME = "children"

    CREATED_AT = Column("created_at", datetime_column)
    FIRST_NAME = Column("first_name")
    LAST_NAME = Column("last_name")
    DATE_OF_BIRTH = Column("dob", date_column)
    ALLERGIES = Column("allergies")
    MEDICAL_NOTES = Column("medical_notes")
    NOTES = Column("notes")


class Guardian(Table):
    TABLE_NAME = "guardians"

    CREATED_AT = Column("created_at", datetime_column)
    FIRST_NAME = Column("first_name")
    LAST_NAME = Column("last_name")
    FULL_NAME = Column("full_name")
    PHONE = Column("phone")
    APPROVED_BY_NAME = Column("approved_by_name")
    APPROVED_BY_METHOD = Column("approved_by_method", enum_column(ApprovalMethod))
    APPROVED_AT = Column("approved_at", datetime_column)


class ChildGuardian(Table):
    TABLE_NAME = "child_guardians"

    CREATED_AT = Column("created_at", datetime_column)
    RELATIONSHIP = Column("relationship")

    # Foreign keys
    CHILD_ID = Column("child_id")
    GUARDIAN_ID = Column("guardian_id")

    @classmethod
    def select_for_pair(cls, store, columns: str, child_id: str, guardian_id: str) -> SyncSelectRequestBuilder:
        return cls.query(store).select(columns).eq(cls.CHILD_ID, child_id).eq(cls.GUARDIAN_ID, guardian_id).limit(1)


class Attendance(Table):
    TABLE_NAME = "attendance"

    CREATED_AT = Column("created_at", datetime_column)
    SERVICE_DATE = Column("service_date", date_column)
    AGE_BUCKET = Column("age_bucket", enum_column(AgeBucket))
    CHECKED_IN_AT = Column("checked_in_at", datetime_column)
    CHECKED_OUT_AT = Column("checked_out_at", datetime_column)

    # Foreign keys
    CHILD_ID = Column("child_id")
    CHECKED_IN_BY = Column("checked_in_by_guardian_id")
    CHECKED_OUT_BY = Column("checked_out_by_guardian_id")

    @classmethod
    def select_by_service_date(cls, store, columns: str, service_date) -> SyncSelectRequestBuilder:
        return cls.query(store).select(columns).eq(cls.SERVICE_DATE, service_date.isoformat())
