from flask import Blueprint, jsonify, request
from pydantic import ValidationError

from checkin.auth.decorators import auth_required
from checkin.schemas.child import ChildCreate, ChildUpdate
from checkin.schemas.guardian import LinkRequest
from checkin.services import get_child_service, get_guardian_service
from checkin.utils.json_utils import custom_jsonify

bp = Blueprint("child", __name__)


@bp.get("/children")
@auth_required
def search_children():
    children = get_child_service().search(request.args.get("q"))
    return custom_jsonify([child.model_dump() for child in children])


@bp.post("/children")
@auth_required
def create_child():
    try:
        data = ChildCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors(include_url=False, include_context=False)}), 400

    child = get_child_service().create(data)
    return custom_jsonify(child.model_dump(), 201)


@bp.get("/children/<string:child_id>")
@auth_required
def get_child(child_id):
    return custom_jsonify(get_child_service().get(child_id).model_dump())


@bp.patch("/children/<string:child_id>")
@auth_required
def update_child(child_id):
    try:
        data = ChildUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors(include_url=False, include_context=False)}), 400

    child = get_child_service().update(child_id, data)
    return custom_jsonify(child.model_dump())


@bp.delete("/children/<string:child_id>")
@auth_required
def deactivate_child(child_id):
    child = get_child_service().deactivate(child_id)
    return custom_jsonify(child.model_dump())


@bp.get("/children/<string:child_id>/guardians")
@auth_required
def list_child_guardians(child_id):
    guardians = get_guardian_service().active_guardians_for(child_id)
    return custom_jsonify([guardian.model_dump() for guardian in guardians])


@bp.post("/children/<string:child_id>/guardians")
@auth_required
def link_guardian(child_id):
    try:
        data = LinkRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": e.errors(include_url=False, include_context=False)}), 400

    # Checks the child exists before linking
    get_child_service().get(child_id)
    link = get_guardian_service().link_to_child(child_id, data.guardian_id, data.relationship)
    return custom_jsonify(link.model_dump())


@bp.delete("/children/<string:child_id>/guardians/<string:guardian_id>")
@auth_required
def unlink_guardian(child_id, guardian_id):
    link = get_guardian_service().unlink_from_child(child_id, guardian_id)
    return custom_jsonify(link.model_dump())
