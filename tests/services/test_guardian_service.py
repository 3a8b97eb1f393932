import pytest

from checkin.exceptions import DuplicateGuardianException, NotFoundException, UniqueViolation, ValidationException
from checkin.supabase.columns import ApprovalMethod
from tests.supabase_mocks import create_mock_link_data


def _guardian_rows(mock_supabase, phone):
    return [row for row in mock_supabase.rows("guardians") if row["phone"] == phone]


def _link_rows(mock_supabase, child_id, guardian_id):
    return [
        row
        for row in mock_supabase.rows("child_guardians")
        if row["child_id"] == child_id and row["guardian_id"] == guardian_id
    ]


# --- search ---


def test_search_short_term_does_not_query(guardian_service, mock_supabase):
    assert guardian_service.search("a") == []
    assert guardian_service.search(" ") == []
    assert mock_supabase.queries("guardians") == 0


def test_search_by_name_skips_inactive(guardian_service):
    results = guardian_service.search("smith")

    assert [guardian.id for guardian in results] == ["guardian-2"]


def test_search_by_phone_orders_by_full_name(guardian_service):
    results = guardian_service.search("0400")

    assert [guardian.full_name for guardian in results] == ["Ana Lee", "Ben Smith"]


def test_search_excludes_given_ids(guardian_service):
    results = guardian_service.search("0400", exclude_ids=["guardian-1"])

    assert [guardian.id for guardian in results] == ["guardian-2"]


# --- create ---


def test_create_guardian(guardian_service, mock_supabase):
    guardian = guardian_service.create({"first_name": "Dina", "last_name": "Lee", "phone": "0400999000"})

    assert guardian.full_name == "Dina Lee"
    assert guardian.approved_by_method == ApprovalMethod.IN_PERSON
    assert guardian.approved_at is not None
    assert guardian.active is True


def test_create_guardian_without_last_name(guardian_service):
    guardian = guardian_service.create({"first_name": "Dina", "phone": "0400999000", "approved_by_method": "sms"})

    assert guardian.full_name == "Dina"
    assert guardian.last_name is None
    assert guardian.approved_by_method == ApprovalMethod.SMS


def test_create_duplicate_guardian_is_rejected(guardian_service, mock_supabase):
    profile = {"first_name": "Dina", "last_name": "Lee", "phone": "0400999000"}
    guardian_service.create(profile)

    with pytest.raises(DuplicateGuardianException) as exc_info:
        guardian_service.create(profile)

    assert exc_info.value.status_code == 409
    assert len(_guardian_rows(mock_supabase, "0400999000")) == 1


def test_create_duplicate_guardian_without_last_name_is_rejected(guardian_service, mock_supabase):
    profile = {"first_name": "Ana", "phone": "0400777888"}
    guardian_service.create(profile)

    with pytest.raises(DuplicateGuardianException):
        guardian_service.create(profile)

    assert len(_guardian_rows(mock_supabase, "0400777888")) == 1


def test_create_guardian_matching_existing_active_guardian(guardian_service, mock_supabase):
    with pytest.raises(DuplicateGuardianException):
        guardian_service.create({"first_name": "Ana", "last_name": "Lee", "phone": "0400111222"})

    assert len(_guardian_rows(mock_supabase, "0400111222")) == 1


def test_create_guardian_matching_inactive_guardian_is_allowed(guardian_service, mock_supabase):
    guardian = guardian_service.create({"first_name": "Cara", "last_name": "Smith", "phone": "0400555666"})

    assert guardian.active is True
    assert len(_guardian_rows(mock_supabase, "0400555666")) == 2


@pytest.mark.parametrize(
    "profile,message",
    [
        ({"last_name": "Lee", "phone": "0400999000"}, "First name is required."),
        ({"first_name": "Dina", "last_name": "Lee"}, "Phone (used to prevent duplicates) is required."),
        ({"first_name": "Dina", "phone": "   "}, "Phone (used to prevent duplicates) is required."),
    ],
)
def test_create_guardian_validation(guardian_service, mock_supabase, profile, message):
    with pytest.raises(ValidationException) as exc_info:
        guardian_service.create(profile)

    assert exc_info.value.message == message
    assert mock_supabase.queries("guardians", "insert") == 0


# --- update ---


def test_update_guardian_rederives_full_name(guardian_service):
    guardian = guardian_service.update("guardian-1", {"first_name": "Anna", "last_name": "Lee", "phone": "0400111222"})

    assert guardian.full_name == "Anna Lee"


def test_update_guardian_into_duplicate(guardian_service):
    with pytest.raises(DuplicateGuardianException):
        guardian_service.update("guardian-1", {"first_name": "Ben", "last_name": "Smith", "phone": "0400333444"})

    assert guardian_service.get("guardian-1").full_name == "Ana Lee"


def test_update_guardian_requires_last_name(guardian_service):
    with pytest.raises(ValidationException) as exc_info:
        guardian_service.update("guardian-1", {"first_name": "Ana", "phone": "0400111222"})

    assert exc_info.value.message == "Last name is required."


def test_update_unknown_guardian(guardian_service):
    with pytest.raises(NotFoundException):
        guardian_service.update("nope", {"first_name": "A", "last_name": "B", "phone": "1"})


# --- links ---


def test_active_guardians_skip_inactive_guardians(guardian_service):
    guardians = guardian_service.active_guardians_for("child-2")

    assert [guardian.id for guardian in guardians] == ["guardian-2"]
    assert guardians[0].relationship == "Father"


def test_active_guardians_skip_inactive_links(guardian_service):
    guardians = guardian_service.active_guardians_for("child-1")

    assert [guardian.id for guardian in guardians] == ["guardian-1"]


def test_active_guardians_without_links(guardian_service):
    assert guardian_service.active_guardians_for("child-3") == []


def test_active_guardians_are_deduplicated_and_sorted(guardian_service, mock_supabase):
    mock_supabase.add_table_data(
        "child_guardians",
        [
            create_mock_link_data("link-9", "child-5", "guardian-2", "Grandad"),
            # A stray second row for the same pair must not produce a second entry
            create_mock_link_data("link-10", "child-5", "guardian-1", "Mum"),
        ],
    )

    guardians = guardian_service.active_guardians_for("child-5")

    assert [guardian.full_name for guardian in guardians] == ["Ana Lee", "Ben Smith"]


def test_link_guardian_inserts_once(guardian_service, mock_supabase):
    link = guardian_service.link_to_child("child-3", "guardian-1", "Grandma")
    again = guardian_service.link_to_child("child-3", "guardian-1")

    assert link.active is True
    assert again.id == link.id
    assert again.relationship == "Grandma"
    assert len(_link_rows(mock_supabase, "child-3", "guardian-1")) == 1


def test_link_guardian_reactivates_existing_link(guardian_service, mock_supabase):
    link = guardian_service.link_to_child("child-1", "guardian-2")

    assert link.id == "link-4"
    assert link.active is True
    assert link.relationship == "Uncle"
    assert [guardian.id for guardian in guardian_service.active_guardians_for("child-1")] == [
        "guardian-1",
        "guardian-2",
    ]


def test_link_guardian_updates_relationship(guardian_service):
    link = guardian_service.link_to_child("child-1", "guardian-1", "Stepmother")

    assert link.id == "link-1"
    assert link.relationship == "Stepmother"


def test_link_guardian_race_falls_back_to_reactivation(guardian_service, mock_supabase, mocker):
    existing = dict(_link_rows(mock_supabase, "child-1", "guardian-2")[0])
    # The first lookup misses, as if another volunteer had not committed yet
    mocker.patch.object(guardian_service.store, "execute_one", side_effect=[None, existing])

    link = guardian_service.link_to_child("child-1", "guardian-2")

    assert link.id == "link-4"
    assert link.active is True
    assert len(_link_rows(mock_supabase, "child-1", "guardian-2")) == 1


def test_link_guardian_race_with_missing_row_reraises(guardian_service, mocker):
    mocker.patch.object(guardian_service.store, "execute_one", side_effect=[None, None])

    with pytest.raises(UniqueViolation):
        guardian_service.link_to_child("child-1", "guardian-2")


def test_unlink_guardian(guardian_service):
    link = guardian_service.unlink_from_child("child-1", "guardian-1")

    assert link.active is False
    assert guardian_service.active_guardians_for("child-1") == []


def test_unlink_unknown_pair(guardian_service):
    with pytest.raises(NotFoundException):
        guardian_service.unlink_from_child("child-3", "guardian-1")
