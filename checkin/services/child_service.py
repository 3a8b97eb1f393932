from typing import Optional

from flask import current_app

from checkin.constants import MIN_SEARCH_TERM_LENGTH, SEARCH_PAGE_SIZE
from checkin.exceptions import NotFoundException
from checkin.schemas import parse_model
from checkin.schemas.child import ChildCreate, ChildResponse, ChildUpdate
from checkin.supabase.gateway import RecordStore
from checkin.supabase.helpers import cols, format_name, ilike_pattern
from checkin.supabase.tables import Child

CHILD_COLUMNS = cols(
    Child.ID,
    Child.FIRST_NAME,
    Child.LAST_NAME,
    Child.DATE_OF_BIRTH,
    Child.ALLERGIES,
    Child.MEDICAL_NOTES,
    Child.NOTES,
    Child.ACTIVE,
    Child.CREATED_AT,
)


class ChildService:
    """Search, create and edit child profiles. Children are never hard-deleted."""

    def __init__(self, store: RecordStore, app=None):
        self.store = store
        self.app = app or current_app
        self.page_size = self.app.config.get("SEARCH_PAGE_SIZE", SEARCH_PAGE_SIZE)

    def search(self, term: Optional[str]) -> list[ChildResponse]:
        term = (term or "").strip()
        if len(term) < MIN_SEARCH_TERM_LENGTH:
            return []

        pattern = ilike_pattern(term)
        rows = self.store.execute(
            Child.select_active(self.store, CHILD_COLUMNS)
            .or_(f"{Child.FIRST_NAME}.ilike.{pattern},{Child.LAST_NAME}.ilike.{pattern}")
            .order(Child.LAST_NAME)
            .order(Child.FIRST_NAME)
            .limit(self.page_size)
        )

        return [ChildResponse.model_validate(row) for row in rows]

    def get(self, child_id: str) -> ChildResponse:
        row = self.store.execute_one(Child.select_by_id(self.store, CHILD_COLUMNS, child_id))
        if row is None:
            raise NotFoundException(f"Child {child_id} not found.")

        return ChildResponse.model_validate(row)

    def create(self, profile) -> ChildResponse:
        profile = parse_model(ChildCreate, profile)

        payload = {
            Child.FIRST_NAME: profile.first_name,
            Child.LAST_NAME: profile.last_name,
            Child.DATE_OF_BIRTH: profile.dob.isoformat(),
            Child.ALLERGIES: profile.allergies,
            Child.MEDICAL_NOTES: profile.medical_notes,
            Child.NOTES: profile.notes,
            Child.ACTIVE: True,
        }
        rows = self.store.execute(Child.query(self.store).insert(payload))
        child = ChildResponse.model_validate(rows[0])

        self.app.logger.info(f"Created child {child.id} ({format_name(rows[0])})")
        return child

    def update(self, child_id: str, profile) -> ChildResponse:
        profile = parse_model(ChildUpdate, profile)

        changes = profile.model_dump(exclude_unset=True)
        if Child.DATE_OF_BIRTH in changes and changes[Child.DATE_OF_BIRTH] is not None:
            changes[Child.DATE_OF_BIRTH] = changes[Child.DATE_OF_BIRTH].isoformat()

        if not changes:
            return self.get(child_id)

        rows = self.store.execute(Child.query(self.store).update(changes).eq(Child.ID, child_id))
        if len(rows) == 0:
            raise NotFoundException(f"Child {child_id} not found.")

        self.app.logger.info(f"Updated child {child_id}: {', '.join(sorted(changes))}")
        return ChildResponse.model_validate(rows[0])

    def deactivate(self, child_id: str) -> ChildResponse:
        rows = self.store.execute(Child.query(self.store).update({Child.ACTIVE: False}).eq(Child.ID, child_id))
        if len(rows) == 0:
            raise NotFoundException(f"Child {child_id} not found.")

        self.app.logger.info(f"Deactivated child {child_id}")
        return ChildResponse.model_validate(rows[0])
