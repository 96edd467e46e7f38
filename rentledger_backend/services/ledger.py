import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import contains_eager, joinedload

from rentledger_backend.errors import (
    ConflictError, NotFoundError, PersistenceError, ValidationError,
)
from rentledger_backend.extensions import db
from rentledger_backend.models import RentObligation, Tenancy, Unit
from rentledger_backend.utils.parsing import (
    is_missing, parse_amount, parse_bool, parse_date, parse_id,
)
from rentledger_backend.utils.periods import parse_period

from . import atomic

log = logging.getLogger(__name__)

_CONFLICT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}
_OBLIGATION_KEY = ["unit_id", "tenancy_id", "period"]
_TOGGLE_ATTEMPTS = 3


def _insert_if_absent(unit_id, tenancy_id, period, amount):
    """Insert a fresh obligation unless one exists. Returns True if a row was created."""
    values = dict(
        unit_id=unit_id,
        tenancy_id=tenancy_id,
        period=period,
        amount=amount if amount is not None else Decimal("0"),
        maintenance_fee=Decimal("0"),
        paid=False,
        paid_on=None,
        notes='',
    )
    insert = _CONFLICT_INSERTS.get(db.engine.dialect.name)
    if insert is not None:
        stmt = (
            insert(RentObligation.__table__)
            .values(**values)
            .on_conflict_do_nothing(index_elements=_OBLIGATION_KEY)
        )
        return db.session.execute(stmt).rowcount == 1

    try:
        with db.session.begin_nested():
            db.session.add(RentObligation(**values))
        return True
    except IntegrityError:
        log.debug("Obligation for unit %s tenancy %s %s already reconciled", unit_id, tenancy_id, period)
        return False


def reconcile(period):
    """Create the missing obligations for ``period``, one per occupied unit.

    Existing obligations are never modified, so repeated calls are no-ops.
    Returns the number of obligations created.
    """
    period = parse_period(period)
    occupied = db.session.execute(
        select(Unit.id, Tenancy.id, Tenancy.rent_amount)
        .join(Tenancy, Unit.current_tenancy_id == Tenancy.id)
        .order_by(Unit.id)
    ).all()

    created = 0
    with atomic("obligation already reconciled"):
        for unit_id, tenancy_id, rent_amount in occupied:
            if _insert_if_absent(unit_id, tenancy_id, period, rent_amount):
                created += 1
    log.debug("Reconciled %s: %d of %d occupied units needed an obligation", period, created, len(occupied))
    return created


def _reconcile_for_read(period):
    # A read must never fail because reconciliation did
    for attempt in (1, 2):
        try:
            reconcile(period)
            return
        except ConflictError:
            log.debug("Concurrent reconciliation of %s detected (attempt %d)", period, attempt)
        except PersistenceError as e:
            if attempt == 1:
                log.warning("Reconciliation of %s failed, retrying once: %s", period, e.__cause__)
                continue
            log.error(
                "Reconciliation of %s failed; serving existing records. cause=%r",
                period, e.__cause__,
            )


def list_obligations(period=None):
    """Obligations joined with unit and tenancy.

    With a period the ledger is reconciled for it first and only that period is
    returned; without one every stored obligation is returned as is.
    """
    query = (
        RentObligation.query.join(RentObligation.unit)
        .options(contains_eager(RentObligation.unit), joinedload(RentObligation.tenancy))
    )
    if period is not None:
        period = parse_period(period)
        _reconcile_for_read(period)
        query = query.filter(RentObligation.period == period)
    return query.order_by(RentObligation.period, Unit.number, RentObligation.id).all()


def upsert(unit_id, tenancy_id, period, fields):
    """Create or fully replace the obligation for (unit, tenancy, period)."""
    unit_id = parse_id(unit_id, "unitId")
    tenancy_id = parse_id(tenancy_id, "tenancyId")
    period = parse_period(period)
    if is_missing(fields.get("amount")):
        raise ValidationError("amount is required", field="amount")

    values = dict(
        amount=parse_amount(fields["amount"], "amount"),
        maintenance_fee=parse_amount(fields.get("maintenanceFee"), "maintenanceFee") or Decimal("0"),
        paid=parse_bool(fields.get("paid") or False, "paid"),
        paid_on=parse_date(fields.get("paidOn"), "paidOn"),
        notes=fields.get("notes") or '',
    )

    with atomic("rent obligation was created concurrently; retry the request"):
        unit = db.session.get(Unit, unit_id)
        if unit is None:
            raise NotFoundError("Unit not found")
        tenancy = db.session.get(Tenancy, tenancy_id)
        if tenancy is None:
            raise NotFoundError("Tenancy not found")
        if tenancy.unit_id != unit.id:
            raise ValidationError("tenancy does not belong to this unit", field="tenancyId")

        obligation = (
            RentObligation.query.filter_by(unit_id=unit_id, tenancy_id=tenancy_id, period=period)
            .with_for_update()
            .first()
        )
        if obligation is None:
            obligation = RentObligation(unit_id=unit_id, tenancy_id=tenancy_id, period=period)
            db.session.add(obligation)
        for column, value in values.items():
            setattr(obligation, column, value)
    return obligation


def toggle_paid(obligation_id):
    """Flip the paid flag with a compare-and-swap on its previous value."""
    table = RentObligation.__table__
    for _ in range(_TOGGLE_ATTEMPTS):
        previous = db.session.execute(
            select(table.c.paid).where(table.c.id == obligation_id)
        ).scalar_one_or_none()
        if previous is None:
            raise NotFoundError("Rent obligation not found")

        paid = not previous
        with atomic():
            result = db.session.execute(
                update(table)
                .where(table.c.id == obligation_id, table.c.paid == previous)
                .values(
                    paid=paid,
                    paid_on=date.today() if paid else None,
                    updated_at=datetime.utcnow(),
                )
            )
        if result.rowcount == 1:
            obligation = db.session.get(RentObligation, obligation_id, populate_existing=True)
            return obligation
        log.debug("Rent obligation %s changed while toggling, retrying", obligation_id)
    raise ConflictError("rent obligation is being modified concurrently")
