from flask import Blueprint, jsonify, request

from ..services import tenancies as tenancy_service
from ..utils.auth_utils import auth_required
from ..utils.parsing import json_object, parse_id, require

bp = Blueprint("tenancies", __name__)


@bp.get("/tenancies")
@auth_required
def list_tenancies():
    return jsonify([t.serialize() for t in tenancy_service.list_tenancies()]), 200


@bp.post("/tenancies")
@auth_required
def create_tenancy():
    """Assign a new tenancy to a unit, closing out the previous occupant."""
    data = json_object(request.get_json(silent=True))
    require(data, "name", "startDate", "rentAmount", "unitId")
    unit_id = parse_id(data["unitId"], "unitId")
    tenancy = tenancy_service.assign_tenant(unit_id, data)
    return jsonify(tenancy.serialize()), 201


@bp.put("/tenancies/<int:tenancy_id>")
@auth_required
def update_tenancy(tenancy_id):
    patch = json_object(request.get_json(silent=True))
    tenancy = tenancy_service.update_tenancy(tenancy_id, patch)
    return jsonify(tenancy.serialize()), 200


@bp.post("/tenancies/<int:tenancy_id>/end")
@auth_required
def end_tenancy(tenancy_id):
    data = json_object(request.get_json(silent=True))
    tenancy = tenancy_service.end_tenancy(tenancy_id, data.get("endDate"))
    return jsonify(tenancy.serialize()), 200
