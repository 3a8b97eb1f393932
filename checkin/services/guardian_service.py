from typing import Iterable, Optional

from flask import current_app

from checkin.constants import MIN_SEARCH_TERM_LENGTH, SEARCH_PAGE_SIZE
from checkin.exceptions import DuplicateGuardianException, NotFoundException, UniqueViolation
from checkin.schemas import parse_model
from checkin.schemas.guardian import (
    ChildGuardianLinkResponse,
    GuardianCreate,
    GuardianResponse,
    GuardianUpdate,
    LinkedGuardianResponse,
)
from checkin.supabase.gateway import RecordStore
from checkin.supabase.helpers import cols, ilike_pattern, utc_now_iso
from checkin.supabase.tables import ChildGuardian, Guardian

GUARDIAN_FIELDS = (
    Guardian.ID,
    Guardian.FIRST_NAME,
    Guardian.LAST_NAME,
    Guardian.FULL_NAME,
    Guardian.PHONE,
    Guardian.APPROVED_BY_NAME,
    Guardian.APPROVED_BY_METHOD,
    Guardian.APPROVED_AT,
    Guardian.ACTIVE,
)
GUARDIAN_COLUMNS = cols(*GUARDIAN_FIELDS)
LINK_COLUMNS = cols(
    ChildGuardian.ID,
    ChildGuardian.CHILD_ID,
    ChildGuardian.GUARDIAN_ID,
    ChildGuardian.RELATIONSHIP,
    ChildGuardian.ACTIVE,
)

DUPLICATE_GUARDIAN_MESSAGE = "That guardian already exists (same first name, last name, and phone)."


class GuardianService:
    """
    Guardian directory: search, create with duplicate suppression, and the
    child links that authorize a guardian to check a child in or out.
    """

    def __init__(self, store: RecordStore, app=None):
        self.store = store
        self.app = app or current_app
        self.page_size = self.app.config.get("SEARCH_PAGE_SIZE", SEARCH_PAGE_SIZE)

    def search(self, term: Optional[str], exclude_ids: Iterable[str] = ()) -> list[GuardianResponse]:
        term = (term or "").strip()
        if len(term) < MIN_SEARCH_TERM_LENGTH:
            return []

        pattern = ilike_pattern(term)
        query = Guardian.select_active(self.store, GUARDIAN_COLUMNS).or_(
            f"{Guardian.FULL_NAME}.ilike.{pattern},{Guardian.PHONE}.ilike.{pattern}"
        )

        exclude_ids = list(exclude_ids)
        if exclude_ids:
            query = query.not_.in_(Guardian.ID, exclude_ids)

        rows = self.store.execute(query.order(Guardian.FULL_NAME).limit(self.page_size))
        return [GuardianResponse.model_validate(row) for row in rows]

    def get(self, guardian_id: str) -> GuardianResponse:
        row = self.store.execute_one(Guardian.select_by_id(self.store, GUARDIAN_COLUMNS, guardian_id))
        if row is None:
            raise NotFoundException(f"Guardian {guardian_id} not found.")

        return GuardianResponse.model_validate(row)

    def get_many(self, guardian_ids: Iterable[str]) -> dict[str, dict]:
        guardian_ids = list(set(guardian_ids))
        if not guardian_ids:
            return {}

        rows = self.store.execute(Guardian.query(self.store).select(GUARDIAN_COLUMNS).in_(Guardian.ID, guardian_ids))
        return {Guardian.ID(row): row for row in rows}

    def create(self, profile) -> GuardianResponse:
        profile = parse_model(GuardianCreate, profile)

        payload = {
            Guardian.FIRST_NAME: profile.first_name,
            Guardian.LAST_NAME: profile.last_name,
            Guardian.FULL_NAME: profile.full_name,
            Guardian.PHONE: profile.phone,
            Guardian.APPROVED_BY_NAME: profile.approved_by_name,
            Guardian.APPROVED_BY_METHOD: profile.approved_by_method.value,
            Guardian.APPROVED_AT: utc_now_iso(),
            Guardian.ACTIVE: True,
        }

        try:
            rows = self.store.execute(Guardian.query(self.store).insert(payload))
        except UniqueViolation as e:
            self.app.logger.warning(f"Duplicate guardian rejected: {profile.full_name}")
            raise DuplicateGuardianException(DUPLICATE_GUARDIAN_MESSAGE) from e

        guardian = GuardianResponse.model_validate(rows[0])
        self.app.logger.info(f"Created guardian {guardian.id} ({guardian.full_name})")
        return guardian

    def update(self, guardian_id: str, profile) -> GuardianResponse:
        profile = parse_model(GuardianUpdate, profile)

        changes = {
            Guardian.FIRST_NAME: profile.first_name,
            Guardian.LAST_NAME: profile.last_name,
            Guardian.FULL_NAME: profile.full_name,
            Guardian.PHONE: profile.phone,
        }

        try:
            rows = self.store.execute(Guardian.query(self.store).update(changes).eq(Guardian.ID, guardian_id))
        except UniqueViolation as e:
            raise DuplicateGuardianException(DUPLICATE_GUARDIAN_MESSAGE) from e

        if len(rows) == 0:
            raise NotFoundException(f"Guardian {guardian_id} not found.")

        self.app.logger.info(f"Updated guardian {guardian_id}")
        return GuardianResponse.model_validate(rows[0])

    def link_to_child(
        self, child_id: str, guardian_id: str, relationship: Optional[str] = None
    ) -> ChildGuardianLinkResponse:
        """
        Authorize a guardian for a child. Idempotent: an existing link for the
        pair, active or not, is reactivated instead of inserting a second row.
        """
        existing = self.store.execute_one(
            ChildGuardian.select_for_pair(self.store, LINK_COLUMNS, child_id, guardian_id)
        )
        if existing is not None:
            return self._reactivate_link(existing, relationship)

        payload = {
            ChildGuardian.CHILD_ID: child_id,
            ChildGuardian.GUARDIAN_ID: guardian_id,
            ChildGuardian.RELATIONSHIP: relationship,
            ChildGuardian.ACTIVE: True,
        }

        try:
            rows = self.store.execute(ChildGuardian.query(self.store).insert(payload))
        except UniqueViolation:
            # Another volunteer linked the same pair in between
            existing = self.store.execute_one(
                ChildGuardian.select_for_pair(self.store, LINK_COLUMNS, child_id, guardian_id)
            )
            if existing is None:
                raise
            return self._reactivate_link(existing, relationship)

        self.app.logger.info(f"Linked guardian {guardian_id} to child {child_id}")
        return ChildGuardianLinkResponse.model_validate(rows[0])

    def _reactivate_link(self, link: dict, relationship: Optional[str]) -> ChildGuardianLinkResponse:
        changes = {ChildGuardian.ACTIVE: True}
        if relationship is not None:
            changes[ChildGuardian.RELATIONSHIP] = relationship

        if ChildGuardian.ACTIVE(link) and len(changes) == 1:
            return ChildGuardianLinkResponse.model_validate(link)

        rows = self.store.execute(
            ChildGuardian.query(self.store).update(changes).eq(ChildGuardian.ID, ChildGuardian.ID(link))
        )
        self.app.logger.info(
            f"Reactivated link between guardian {ChildGuardian.GUARDIAN_ID(link)} "
            f"and child {ChildGuardian.CHILD_ID(link)}"
        )
        return ChildGuardianLinkResponse.model_validate(rows[0])

    def unlink_from_child(self, child_id: str, guardian_id: str) -> ChildGuardianLinkResponse:
        rows = self.store.execute(
            ChildGuardian.query(self.store)
            .update({ChildGuardian.ACTIVE: False})
            .eq(ChildGuardian.CHILD_ID, child_id)
            .eq(ChildGuardian.GUARDIAN_ID, guardian_id)
        )
        if len(rows) == 0:
            raise NotFoundException(f"Guardian {guardian_id} is not linked to child {child_id}.")

        self.app.logger.info(f"Unlinked guardian {guardian_id} from child {child_id}")
        return ChildGuardianLinkResponse.model_validate(rows[0])

    def active_guardians_for(self, child_id: str) -> list[LinkedGuardianResponse]:
        """
        Guardians reachable through the child's active links. A link can still be
        active after its guardian was deactivated; those guardians are left out.
        """
        rows = self.store.execute(
            ChildGuardian.select_active(
                self.store,
                cols(ChildGuardian.ID, ChildGuardian.RELATIONSHIP, Guardian.join(*GUARDIAN_FIELDS)),
            ).eq(ChildGuardian.CHILD_ID, child_id)
        )

        guardians: dict[str, LinkedGuardianResponse] = {}
        for link in rows:
            guardian = Guardian.unwrap_one(link)
            if guardian is None or not Guardian.ACTIVE(guardian):
                continue

            guardian_id = Guardian.ID(guardian)
            if guardian_id in guardians:
                continue

            guardians[guardian_id] = LinkedGuardianResponse.model_validate(
                {**guardian, "relationship": ChildGuardian.RELATIONSHIP(link)}
            )

        return sorted(guardians.values(), key=lambda g: (g.full_name or g.first_name).lower())
