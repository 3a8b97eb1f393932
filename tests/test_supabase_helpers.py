from datetime import date, datetime, timezone

import httpx
import pytest
from postgrest.exceptions import APIError

from checkin.exceptions import StoreQueryException, StoreUnavailableException, UniqueViolation
from checkin.supabase.columns import ApprovalMethod
from checkin.supabase.gateway import RecordStore, unwrap_or_error
from checkin.supabase.helpers import cols, format_name, ilike_pattern, is_unique_violation, one_or_none
from checkin.supabase.tables import Attendance, Child, Guardian
from tests.supabase_mocks import MockSupabaseResponse


def test_one_or_none():
    assert one_or_none(None) is None
    assert one_or_none([]) is None
    assert one_or_none({"id": "a"}) == {"id": "a"}
    assert one_or_none([{"id": "a"}, {"id": "b"}]) == {"id": "a"}


def test_cols_and_join():
    assert cols() == "*"
    assert cols(Child.ID, Child.FIRST_NAME) == "id, first_name"
    assert Child.join(Child.ID, Child.DATE_OF_BIRTH) == "children(id, dob)"


def test_unwrap_one_normalizes_embedded_rows():
    assert Child.unwrap_one({"children": {"id": "child-1"}}) == {"id": "child-1"}
    assert Child.unwrap_one({"children": [{"id": "child-1"}]}) == {"id": "child-1"}
    assert Child.unwrap_one({"children": []}) is None
    assert Child.unwrap_one({"children": None}) is None


def test_columns_convert_values():
    row = {
        "service_date": "2025-06-08",
        "checked_in_at": "2025-06-08T09:00:00+00:00",
        "age_bucket": "preschool",
        "checked_out_at": None,
    }

    assert Attendance.SERVICE_DATE(row) == date(2025, 6, 8)
    assert Attendance.CHECKED_IN_AT(row) == datetime(2025, 6, 8, 9, tzinfo=timezone.utc)
    assert Attendance.AGE_BUCKET(row).value == "preschool"
    assert Attendance.CHECKED_OUT_AT(row) is None
    assert Guardian.APPROVED_BY_METHOD({"approved_by_method": "carrier pigeon"}) == ApprovalMethod.IN_PERSON


def test_format_name():
    assert format_name({"first_name": "Ana", "last_name": "Lee"}) == "Ana Lee"
    assert format_name({"first_name": "Ana", "last_name": None}) == "Ana"
    assert format_name(None, default="Unknown child") == "Unknown child"
    assert format_name({"first_name": None}) == "Unknown"


def test_ilike_pattern_escapes_wildcards():
    assert ilike_pattern(" ana ") == "%ana%"
    assert ilike_pattern("50%_off") == "%50\\%\\_off%"
    assert ilike_pattern("Lee, Ana (Mum)") == "%Lee Ana Mum%"


def test_is_unique_violation():
    assert is_unique_violation(APIError({"code": "23505", "message": "duplicate key"}))
    assert not is_unique_violation(APIError({"code": "42P01", "message": "relation does not exist"}))
    assert is_unique_violation(
        APIError({"code": None, "message": "duplicate key value violates unique constraint", "details": None})
    )


def test_unwrap_or_error(mocker):
    logger = mocker.Mock()

    assert unwrap_or_error(None, logger) == []
    assert unwrap_or_error(MockSupabaseResponse(None), logger) == []
    assert unwrap_or_error(MockSupabaseResponse({"id": "a"}), logger) == [{"id": "a"}]
    assert unwrap_or_error(MockSupabaseResponse([{"id": "a"}]), logger) == [{"id": "a"}]


def test_unwrap_or_error_raises_on_error(mocker):
    mocker.patch("checkin.supabase.gateway.sentry_sdk")
    logger = mocker.Mock()

    with pytest.raises(StoreQueryException):
        unwrap_or_error(MockSupabaseResponse(None, error={"message": "boom"}), logger)

    logger.error.assert_called_once()


def _failing_builder(mocker, error):
    builder = mocker.Mock()
    builder.execute.side_effect = error
    return builder


def test_execute_translates_unique_violation(mocker):
    store = RecordStore(mocker.Mock(), mocker.Mock())
    error = APIError({"code": "23505", "message": "duplicate key value violates unique constraint"})

    with pytest.raises(UniqueViolation):
        store.execute(_failing_builder(mocker, error))


def test_execute_reports_query_errors(mocker):
    mock_sentry = mocker.patch("checkin.supabase.gateway.sentry_sdk")
    logger = mocker.Mock()
    store = RecordStore(mocker.Mock(), logger)
    error = APIError({"code": "42703", "message": "column children.nope does not exist"})

    with pytest.raises(StoreQueryException) as exc_info:
        store.execute(_failing_builder(mocker, error))

    assert exc_info.value.status_code == 502
    logger.error.assert_called_once()
    mock_sentry.capture_message.assert_called_once()


def test_execute_translates_transport_errors(mocker):
    mock_sentry = mocker.patch("checkin.supabase.gateway.sentry_sdk")
    store = RecordStore(mocker.Mock(), mocker.Mock())

    with pytest.raises(StoreUnavailableException) as exc_info:
        store.execute(_failing_builder(mocker, httpx.ConnectError("connection refused")))

    assert exc_info.value.status_code == 503
    mock_sentry.capture_exception.assert_called_once()


def test_execute_one(mocker):
    store = RecordStore(mocker.Mock(), mocker.Mock())
    builder = mocker.Mock()

    builder.execute.return_value = MockSupabaseResponse([])
    assert store.execute_one(builder) is None

    builder.execute.return_value = MockSupabaseResponse([{"id": "a"}, {"id": "b"}])
    assert store.execute_one(builder) == {"id": "a"}
