from flask import Blueprint, jsonify, request

from ..services import ledger
from ..utils.auth_utils import auth_required
from ..utils.parsing import json_object

bp = Blueprint("rents", __name__)


@bp.get("/rents")
@auth_required
def list_rents():
    # optional YYYY-MM filter; "month" is the legacy name
    period = request.args.get("period") or request.args.get("month")
    obligations = ledger.list_obligations(period)
    return jsonify([o.serialize() for o in obligations]), 200


@bp.post("/rents/upsert")
@auth_required
def upsert_rent():
    data = json_object(request.get_json(silent=True))
    obligation = ledger.upsert(
        data.get("unitId"),
        data.get("tenancyId"),
        data.get("period") or data.get("month"),
        data,
    )
    return jsonify(obligation.serialize()), 200


@bp.put("/rents/<int:obligation_id>/toggle")
@auth_required
def toggle_rent(obligation_id):
    obligation = ledger.toggle_paid(obligation_id)
    return jsonify(obligation.serialize()), 200
