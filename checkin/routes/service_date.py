from flask import Blueprint, current_app

from checkin.auth.decorators import auth_required
from checkin.utils.date_utils import get_current_service_date, get_relative_service_date, parse_service_date
from checkin.utils.json_utils import custom_jsonify

bp = Blueprint("service_date", __name__)


def _service_date_response(service_date):
    return custom_jsonify({"service_date": service_date, "weekday": service_date.strftime("%A")})


@bp.get("/service-dates/current")
@auth_required
def current_service_date():
    service_date = get_current_service_date(
        current_app.config["SERVICE_WEEKDAY"], current_app.config["BUSINESS_TIMEZONE"]
    )
    return _service_date_response(service_date)


@bp.get("/service-dates/<string:service_date>/next")
@auth_required
def next_service_date(service_date):
    weekday = current_app.config["SERVICE_WEEKDAY"]
    return _service_date_response(get_relative_service_date(1, parse_service_date(service_date, weekday), weekday))


@bp.get("/service-dates/<string:service_date>/previous")
@auth_required
def previous_service_date(service_date):
    weekday = current_app.config["SERVICE_WEEKDAY"]
    return _service_date_response(get_relative_service_date(-1, parse_service_date(service_date, weekday), weekday))
