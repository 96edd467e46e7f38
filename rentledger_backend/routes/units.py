from flask import Blueprint, jsonify, request

from ..services import tenancies as tenancy_service
from ..services import units as unit_service
from ..utils.auth_utils import auth_required
from ..utils.parsing import json_object

bp = Blueprint("units", __name__)


@bp.get("/units")
@auth_required
def list_units():
    """Units with their current occupant's summary."""
    return jsonify([u.serialize() for u in unit_service.list_units()]), 200


@bp.post("/units")
@auth_required
def create_unit():
    data = json_object(request.get_json(silent=True))
    unit = unit_service.create_unit(data.get("number"), data.get("notes"))
    return jsonify(unit.serialize()), 201


@bp.get("/units/<int:unit_id>")
@auth_required
def get_unit(unit_id):
    return jsonify(unit_service.get_unit(unit_id).serialize()), 200


@bp.get("/units/<int:unit_id>/tenancies")
@auth_required
def tenancy_history(unit_id):
    """Active and past tenancies of a unit, newest first."""
    history = tenancy_service.list_tenancy_history(unit_id)
    return jsonify([t.serialize(include_unit=False) for t in history]), 200
