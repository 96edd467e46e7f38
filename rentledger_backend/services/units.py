from sqlalchemy.orm import joinedload

from rentledger_backend.errors import ConflictError, NotFoundError, ValidationError
from rentledger_backend.extensions import db
from rentledger_backend.models import Unit
from rentledger_backend.utils.parsing import is_missing

from . import atomic


def create_unit(number, notes=None):
    if is_missing(number):
        raise ValidationError("number is required", field="number")
    number = str(number).strip()
    if Unit.query.filter_by(number=number).first():
        raise ConflictError(f"unit {number} already exists")

    unit = Unit(number=number, notes=notes or '')
    with atomic(f"unit {number} already exists"):
        db.session.add(unit)
    return unit


def get_unit(unit_id):
    unit = db.session.get(Unit, unit_id)
    if unit is None:
        raise NotFoundError("Unit not found")
    return unit


def list_units():
    return (
        Unit.query.options(joinedload(Unit.current_tenancy))
        .order_by(Unit.number)
        .all()
    )
