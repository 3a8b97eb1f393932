from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from checkin.auth.decorators import auth_required
from checkin.schemas.guardian import GuardianCreate, GuardianUpdate
from checkin.services import get_guardian_service
from checkin.utils.json_utils import custom_jsonify

bp = Blueprint("guardian", __name__)


@bp.get("/guardians")
@auth_required
def search_guardians():
    exclude = request.args.get("exclude", "")
    exclude_ids = [guardian_id.strip() for guardian_id in exclude.split(",") if guardian_id.strip()]

    guardians = get_guardian_service().search(request.args.get("q"), exclude_ids)
    return custom_jsonify([guardian.model_dump() for guardian in guardians])


@bp.post("/guardians")
@auth_required
def create_guardian():
    try:
        data = GuardianCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors(include_url=False, include_context=False)}), 400

    guardian = get_guardian_service().create(data)
    return custom_jsonify(guardian.model_dump(), 201)


@bp.patch("/guardians/<string:guardian_id>")
@auth_required
def update_guardian(guardian_id):
    try:
        data = GuardianUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors(include_url=False, include_context=False)}), 400

    guardian = get_guardian_service().update(guardian_id, data)
    return custom_jsonify(guardian.model_dump())
