import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import joinedload

from rentledger_backend.errors import NotFoundError, ValidationError
from rentledger_backend.extensions import db
from rentledger_backend.models import Tenancy, Unit
from rentledger_backend.utils.parsing import (
    is_missing, parse_amount, parse_bool, parse_date, parse_id, require,
)

from . import atomic, unit_lock

log = logging.getLogger(__name__)

# request key -> (column, parser)
_PATCHABLE = {
    "name": ("name", None),
    "phone": ("phone", None),
    "idNumber": ("id_number", None),
    "startDate": ("start_date", parse_date),
    "endDate": ("end_date", parse_date),
    "rentAmount": ("rent_amount", parse_amount),
    "deposit": ("deposit", parse_amount),
}
_NOT_NULL = {"name", "startDate", "rentAmount"}


def get_tenancy(tenancy_id):
    tenancy = db.session.get(Tenancy, tenancy_id)
    if tenancy is None:
        raise NotFoundError("Tenancy not found")
    return tenancy


def _lock_tenancy(unit_id, tenancy_id):
    """Re-read the unit and tenancy rows under lock, replacing any state loaded earlier."""
    db.session.execute(
        select(Unit).where(Unit.id == unit_id).with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one()
    tenancy = db.session.execute(
        select(Tenancy).where(Tenancy.id == tenancy_id).with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if tenancy is None:
        raise NotFoundError("Tenancy not found")
    return tenancy


def _check_neighbours(tenancy, start_date, end_date):
    """Keep [start_date, end_date] between the unit's previous and next tenancy."""
    siblings = (
        Tenancy.query.filter(Tenancy.unit_id == tenancy.unit_id, Tenancy.id != tenancy.id)
        .populate_existing()
    )
    previous = siblings.filter(Tenancy.id < tenancy.id).order_by(Tenancy.id.desc()).first()
    following = siblings.filter(Tenancy.id > tenancy.id).order_by(Tenancy.id).first()

    if previous is not None and previous.end_date is not None and start_date < previous.end_date:
        raise ValidationError(
            "startDate must not be before the previous tenancy's endDate",
            field="startDate",
        )
    if following is not None and (end_date is None or end_date > following.start_date):
        raise ValidationError(
            "endDate must not be after the next tenancy's startDate",
            field="endDate",
        )


def assign_tenant(unit_id, data):
    """Make a new tenancy the unit's current occupant.

    The unit's active tenancy, if any, is closed with ``end_date`` equal to the
    new tenancy's start date, so intervals for one unit never overlap. Closing
    the old tenancy, inserting the new one and repointing the unit happen in a
    single transaction, serialized per unit.
    """
    require(data, "name", "startDate", "rentAmount")
    unit_id = parse_id(unit_id, "unitId")
    start_date = parse_date(data["startDate"], "startDate")
    end_date = parse_date(data.get("endDate"), "endDate")
    rent_amount = parse_amount(data["rentAmount"], "rentAmount")
    deposit = parse_amount(data.get("deposit"), "deposit") or Decimal("0")
    if end_date and end_date < start_date:
        raise ValidationError("endDate must not be before startDate", field="endDate")

    with unit_lock(unit_id):
        with atomic("unit already has an active tenancy"):
            unit = db.session.execute(
                select(Unit).where(Unit.id == unit_id).with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if unit is None:
                raise NotFoundError("Unit not found")

            previous = (
                Tenancy.query.filter_by(unit_id=unit.id)
                .order_by(Tenancy.id.desc())
                .populate_existing()
                .with_for_update()
                .first()
            )
            if previous is not None and not previous.active:
                if previous.end_date is not None and start_date < previous.end_date:
                    raise ValidationError(
                        "startDate must not be before the previous tenancy's endDate",
                        field="startDate",
                    )
            elif previous is not None:
                if start_date < previous.start_date:
                    raise ValidationError(
                        "startDate must not be before the current tenancy's startDate",
                        field="startDate",
                    )
                previous.deactivate(start_date)
                # the partial unique index needs the old row inactive before the insert
                db.session.flush()
                log.info(
                    "Tenancy %s in unit %s superseded on %s",
                    previous.id, unit.number, start_date.isoformat(),
                )

            tenancy = Tenancy(
                unit=unit,
                name=str(data["name"]).strip(),
                phone=data.get("phone") or '',
                id_number=data.get("idNumber") or '',
                start_date=start_date,
                end_date=end_date,
                rent_amount=rent_amount,
                deposit=deposit,
                active=True,
            )
            db.session.add(tenancy)
            db.session.flush()
            unit.current_tenancy = tenancy

    log.info("Tenancy %s assigned to unit %s", tenancy.id, unit_id)
    return tenancy


def update_tenancy(tenancy_id, patch):
    """Apply a partial update.

    Moving a tenancy to another unit is rejected; reassignment goes through
    :func:`assign_tenant`. ``active`` may only go from true to false, which
    ends the tenancy the same way :func:`end_tenancy` does. Dates may not
    overlap the unit's previous or next tenancy.
    """
    unit_id = get_tenancy(tenancy_id).unit_id

    if "unitId" in patch and parse_id(patch["unitId"], "unitId") != unit_id:
        raise ValidationError(
            "unitId cannot be changed; assign a new tenancy to the other unit instead",
            field="unitId",
        )
    want_active = parse_bool(patch["active"], "active") if "active" in patch else None

    changes = {}
    for key, (column, parser) in _PATCHABLE.items():
        if key not in patch:
            continue
        value = patch[key]
        if key in _NOT_NULL and is_missing(value):
            raise ValidationError(f"{key} cannot be empty", field=key)
        if parser is not None:
            value = parser(value, key)
        elif value is None:
            value = ''
        changes[column] = value

    with unit_lock(unit_id):
        with atomic():
            # decisions below use the rows as they are now, not as first read
            tenancy = _lock_tenancy(unit_id, tenancy_id)
            if want_active and not tenancy.active:
                raise ValidationError("an inactive tenancy cannot be reactivated", field="active")
            close = tenancy.active and want_active is False

            start_date = changes.get("start_date", tenancy.start_date)
            end_date = changes.get("end_date", tenancy.end_date)
            if close and end_date is None:
                end_date = changes["end_date"] = date.today()
            if end_date is not None and end_date < start_date:
                raise ValidationError("endDate must not be before startDate", field="endDate")
            if not tenancy.active and "end_date" in changes and end_date is None:
                raise ValidationError("an ended tenancy must keep its endDate", field="endDate")
            if "start_date" in changes or "end_date" in changes:
                _check_neighbours(tenancy, start_date, end_date)

            for column, value in changes.items():
                setattr(tenancy, column, value)
            if close:
                tenancy.deactivate(end_date)
                log.info("Tenancy %s ended on %s via update", tenancy.id, end_date.isoformat())
    return tenancy


def end_tenancy(tenancy_id, end_date=None):
    """Terminate a tenancy and vacate its unit.

    Ending an ended tenancy again is a no-op unless a different date is asked for.
    """
    unit_id = get_tenancy(tenancy_id).unit_id
    requested = parse_date(end_date, "endDate")

    with unit_lock(unit_id):
        with atomic():
            tenancy = _lock_tenancy(unit_id, tenancy_id)
            if not tenancy.active:
                if requested is not None and requested != tenancy.end_date:
                    raise ValidationError("tenancy has already ended", field="endDate")
                return tenancy

            end = requested or date.today()
            if end < tenancy.start_date:
                raise ValidationError("endDate must not be before startDate", field="endDate")
            tenancy.deactivate(end)
    log.info("Tenancy %s ended on %s", tenancy.id, end.isoformat())
    return tenancy


def list_tenancies():
    return (
        Tenancy.query.options(joinedload(Tenancy.unit))
        .order_by(Tenancy.id)
        .all()
    )


def list_tenancy_history(unit_id):
    """All tenancies of a unit, newest start date first."""
    if db.session.get(Unit, unit_id) is None:
        raise NotFoundError("Unit not found")
    return (
        Tenancy.query.filter_by(unit_id=unit_id)
        .order_by(Tenancy.start_date.desc(), Tenancy.id.desc())
        .all()
    )
