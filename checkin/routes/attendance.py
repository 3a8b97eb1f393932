from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from checkin.auth.decorators import auth_required
from checkin.auth.helpers import get_caller_id
from checkin.schemas.attendance import CheckInRequest, CheckOutRequest
from checkin.services import get_attendance_service
from checkin.utils.date_utils import parse_service_date
from checkin.utils.json_utils import custom_jsonify

bp = Blueprint("attendance", __name__)


def _parse_date(service_date: str):
    return parse_service_date(service_date, current_app.config["SERVICE_WEEKDAY"])


@bp.get("/attendance/<string:service_date>")
@auth_required
def get_roster(service_date):
    roster = get_attendance_service().roster(_parse_date(service_date))
    return custom_jsonify(roster.model_dump())


@bp.post("/attendance/<string:service_date>/check-in")
@auth_required
def check_in(service_date):
    try:
        data = CheckInRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors(include_url=False, include_context=False)}), 400

    record = get_attendance_service().check_in(data.child_id, data.guardian_id, _parse_date(service_date))
    current_app.logger.info(f"Check-in {record.id} recorded by volunteer {get_caller_id()}")
    return custom_jsonify(record.model_dump(), 201)


@bp.post("/attendance/records/<string:attendance_id>/check-out")
@auth_required
def check_out(attendance_id):
    try:
        data = CheckOutRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors(include_url=False, include_context=False)}), 400

    result = get_attendance_service().check_out(attendance_id, data.guardian_id)
    if not result.already_checked_out:
        current_app.logger.info(f"Check-out {attendance_id} recorded by volunteer {get_caller_id()}")
    return custom_jsonify(result.model_dump())


@bp.get("/attendance/<string:service_date>/allergies")
@auth_required
def get_allergies(service_date):
    allergies = get_attendance_service().allergies_in_play(_parse_date(service_date))
    return custom_jsonify(allergies.model_dump())


@bp.get("/attendance/<string:service_date>/birthdays")
@auth_required
def get_birthdays(service_date):
    birthdays = get_attendance_service().birthdays(_parse_date(service_date))
    return custom_jsonify([birthday.model_dump() for birthday in birthdays])
